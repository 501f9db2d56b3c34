"""The ``generateComponent`` tool.

Renders a React/TypeScript component skeleton from structured input.
The inputs are already structured, so no model call is made: the
output is pure string construction and identical for identical input.
"""

import re

from pydantic import Field

from docsmith.message import CamelModel


class PropSpec(CamelModel):
    name: str
    type: str
    required: bool = False
    description: str = ""


class GenerateComponentInput(CamelModel):
    """Generate React components from API documentation with TypeScript and TailwindCSS."""

    component_name: str = Field(description="Name of the component to generate")
    api_description: str = Field(description="Description of the API functionality")
    props: list[PropSpec] = Field(default_factory=list)
    styling: str = Field(
        default="",
        description="Styling preferences and requirements",
    )


class ComponentResult(CamelModel):
    component_name: str
    code: str
    usage: str
    props_definition: str | None = None
    styling_notes: str | None = None


def pascal_case(name: str) -> str:
    """``"user card"`` and ``"user-card"`` become ``"UserCard"``.

    Already PascalCase names are left alone.
    """
    words = [w for w in re.split(r"[^0-9A-Za-z]+", name) if w]
    result = "".join(w[0].upper() + w[1:] for w in words)
    if not result:
        return "Component"
    if result[0].isdigit():
        result = "Component" + result
    return result


def render_props_interface(name: str, props: list[PropSpec]) -> str:
    lines = [f"export interface {name}Props {{"]
    for prop in props:
        if prop.description:
            lines.append(f"  /** {prop.description} */")
        marker = "" if prop.required else "?"
        lines.append(f"  {prop.name}{marker}: {prop.type};")
    lines.append("}")
    return "\n".join(lines)


def _example_value(prop: PropSpec) -> str:
    t = prop.type.strip()
    if "=>" in t:
        return "{() => {}}"
    if t.endswith("[]") or t.startswith("Array<"):
        return "{[]}"
    if t == "string":
        return f'"{prop.name}"'
    if t == "number":
        return "{0}"
    if t == "boolean":
        return "{true}"
    return "{undefined}"


def render_usage(name: str, props: list[PropSpec]) -> str:
    attrs = [f"{p.name}={_example_value(p)}" for p in props if p.required]
    if not attrs:
        element = f"<{name} />"
    elif len(attrs) == 1:
        element = f"<{name} {attrs[0]} />"
    else:
        inner = "\n".join(f"  {a}" for a in attrs)
        element = f"<{name}\n{inner}\n/>"
    return f"import {name} from './{name}';\n\n{element}"


def render_component(
    name: str, api_description: str, props: list[PropSpec], styling: str,
) -> str:
    props_block = render_props_interface(name, props)
    params = ", ".join(p.name for p in props)
    signature = f"{{ {params} }}: {name}Props" if props else f"_props: {name}Props"
    fields = "\n".join(
        f'        <dd className="text-sm text-gray-700">{{String({p.name})}}</dd>'
        for p in props
    )
    body = [
        "import React from 'react';",
        "",
        props_block,
        "",
        f"/** {api_description} */" if api_description else f"/** {name} */",
        f"export default function {name}({signature}) {{",
        "  return (",
        f'    <section className="rounded-xl border border-gray-200 bg-white p-4 shadow-sm" aria-label="{name}">',
        f'      <h2 className="mb-2 text-lg font-semibold">{name}</h2>',
    ]
    if props:
        body += ['      <dl className="space-y-1">', fields, "      </dl>"]
    body += ["    </section>", "  );", "}"]
    if styling:
        body.insert(0, f"// Styling: {styling}")
    return "\n".join(body)


def render_styling_notes(styling: str) -> str:
    notes = "Styled with TailwindCSS utility classes; override them through className."
    if styling:
        notes += f" Requested styling: {styling}"
    return notes


async def generate_component(params: GenerateComponentInput) -> ComponentResult:
    name = pascal_case(params.component_name)
    return ComponentResult(
        component_name=name,
        code=render_component(name, params.api_description, params.props, params.styling),
        usage=render_usage(name, params.props),
        props_definition=render_props_interface(name, params.props),
        styling_notes=render_styling_notes(params.styling),
    )
