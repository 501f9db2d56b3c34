from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from docsmith.components import GenerateComponentInput, generate_component
from docsmith.documentation import BrowseDocumentationInput, DocumentationBrowser
from docsmith.search import SearchClient


class Tool(BaseModel):
    """A callable tool with an explicit input schema.

    Arguments coming from the model are validated against
    ``input_model`` before ``func`` ever sees them.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    func: Callable[[BaseModel], Awaitable[BaseModel]] = Field(exclude=True)
    model_config = {"arbitrary_types_allowed": True}

    def get_schema(self) -> dict:
        """Return an OpenAI-compatible function tool schema."""
        parameters = self.input_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        parameters.pop("description", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def parse_input(self, arguments: dict) -> BaseModel:
        return self.input_model.model_validate(arguments)

    async def __call__(self, params: BaseModel) -> BaseModel:
        return await self.func(params)


class ToolRegistry:
    """Tools available to the assistant, keyed by name."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for t in tools or []:
            self.register(t)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict]:
        return [t.get_schema() for t in self._tools.values()]


def build_registry(search: SearchClient) -> ToolRegistry:
    """The default tool set: documentation browsing and component generation."""
    return ToolRegistry([
        Tool(
            name="browseDocumentation",
            description=(
                "Browse and fetch content from API documentation URLs "
                "or search for documentation"
            ),
            input_model=BrowseDocumentationInput,
            func=DocumentationBrowser(search),
        ),
        Tool(
            name="generateComponent",
            description=(
                "Generate React components from API documentation "
                "with TypeScript and TailwindCSS"
            ),
            input_model=GenerateComponentInput,
            func=generate_component,
        ),
    ])
