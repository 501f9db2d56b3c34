"""FastAPI application serving the chat endpoint."""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from docsmith import __version__
from docsmith.config import Settings
from docsmith.errors import InvalidRequest, MissingCredentials
from docsmith.log import setup_logging
from docsmith.message import ChatRequest, to_model_messages
from docsmith.provider import ModelProvider, OpenAIProvider
from docsmith.runner import ChatRunner
from docsmith.search import SearchClient
from docsmith.sse import EventEmitter, QueueSink
from docsmith.tools import ToolRegistry, build_registry

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def get_provider(request: Request, settings: Settings = Depends(get_settings)) -> ModelProvider:
    api_key = settings.require_completion_credentials()
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        provider = OpenAIProvider(api_key=api_key, base_url=settings.openai_base_url)
        request.app.state.provider = provider
    return provider


def get_registry(request: Request, settings: Settings = Depends(get_settings)) -> ToolRegistry:
    search = getattr(request.app.state, "search", None)
    if search is None:
        search = SearchClient(settings.tavily_api_key)
        request.app.state.search = search
    return build_registry(search)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)
    yield
    provider = getattr(app.state, "provider", None)
    if provider is not None:
        await provider.aclose()
    search = getattr(app.state, "search", None)
    if search is not None:
        await search.aclose()


app = FastAPI(
    title="docsmith",
    description=(
        "Chat assistant that browses API documentation and generates "
        "React components, streamed as server-sent events."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Rejected malformed chat request: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid messages"})


@app.exception_handler(InvalidRequest)
async def invalid_messages_handler(request: Request, exc: InvalidRequest) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(MissingCredentials)
async def missing_credentials_handler(request: Request, exc: MissingCredentials) -> JSONResponse:
    logger.error(f"Missing credentials: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.post("/api/chat")
async def chat(
    request: ChatRequest,
    provider: ModelProvider = Depends(get_provider),
    registry: ToolRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    transcript = to_model_messages(request.messages)
    if not transcript:
        raise InvalidRequest("No usable messages")

    runner = ChatRunner(
        provider=provider,
        registry=registry,
        model=settings.model,
        max_turns=settings.max_turns,
    )
    sink = QueueSink()
    emitter = EventEmitter(sink)
    logger.info(f"Starting chat stream with {len(transcript)} message(s)")
    return StreamingResponse(
        sink.body(lambda: emitter.run(runner.iter(transcript))),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/health")
async def health_check() -> dict:
    return {"status": "healthy", "version": __version__}


def main() -> None:
    import uvicorn

    uvicorn.run("docsmith.app:app", host="0.0.0.0", port=8000, log_level="info")


if __name__ == "__main__":
    main()
