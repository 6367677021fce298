"""Server-side validation emission.

Server modules use the strict flavor only: ``<Name>Strict`` models that
reject unknown fields, kept apart from the loose client types.
"""

import json

from openapi_craft.generator.client import docstring_text, render_import, used_names
from openapi_craft.generator.operations import OperationMetadata
from openapi_craft.generator.templates import INDENT
from openapi_craft.parser.base import GeneratedFile

CONFIG_NAMES = ("ApiResponse", "ApiResponseError", "DeserializerMap", "ParseResult", "parse_payload")
TYPING_NAMES = ("Any", "Literal", "Union")


def validator_names(meta: OperationMetadata) -> tuple[str, str]:
    return f"validate_{meta.function_name}_request", f"validate_{meta.function_name}_response"


def render_validators(meta: OperationMetadata) -> str:
    request_name, response_name = validator_names(meta)
    request_map = meta.body_info.request_map_name
    response_map = meta.response_union.response_map_name
    default_content_type = json.dumps(meta.body_info.default_content_type or "")
    declared = ", ".join(json.dumps(code) for code in meta.response_analysis.status_codes if code != "default")
    declared_literal = f"frozenset({{{declared}}})" if declared else "frozenset()"
    return "\n".join([
        f"def {request_name}(",
        f"{INDENT}body: Any,",
        f"{INDENT}content_type: str | None = None,",
        f"{INDENT}deserializers: DeserializerMap | None = None,",
        ") -> ParseResult[Any]:",
        f'{INDENT}"""Validate an incoming request body against the strict request schemas."""',
        f"{INDENT}return parse_payload(content_type or {default_content_type}, body, {request_map}, deserializers)",
        "",
        "",
        f"def {response_name}(",
        f"{INDENT}status: int | str,",
        f"{INDENT}body: Any,",
        f"{INDENT}content_type: str | None = None,",
        f"{INDENT}deserializers: DeserializerMap | None = None,",
        ") -> ParseResult[Any]:",
        f'{INDENT}"""Validate an outgoing response body; undeclared statuses fall back to "default"."""',
        f"{INDENT}key = str(status)",
        f"{INDENT}if key not in {declared_literal}:",
        f'{INDENT}{INDENT}key = "default"',
        f"{INDENT}schema_map = {response_map}.get(key, {{}})",
        f'{INDENT}return parse_payload(content_type or next(iter(schema_map), ""), body, schema_map, deserializers)',
    ])


def render_server_module(meta: OperationMetadata) -> GeneratedFile:
    union = meta.response_union
    declarations = "\n\n".join([meta.body_info.request_map_type, union.response_map_type, union.union_type_definition])
    validators = render_validators(meta)
    source = declarations + "\n" + validators

    header = [
        f'"""Strict validation for {meta.method.upper()} {docstring_text(meta.path)} ({meta.operation_id})."""',
        "",
        "from __future__ import annotations",
        "",
        *render_import("typing", used_names(TYPING_NAMES, source)),
        "",
        *render_import("..config", used_names(CONFIG_NAMES, source)),
        *render_import("..schemas", sorted(meta.type_imports)),
    ]
    content = "\n".join(header) + "\n\n" + declarations + "\n\n\n" + validators + "\n"
    return GeneratedFile(name=f"server/{meta.function_name}.py", content=content)


def render_server_init(metas: list[OperationMetadata]) -> GeneratedFile:
    lines = ['"""Generated server-side validators."""', ""]
    exported = []
    for meta in sorted(metas, key=lambda m: m.function_name):
        names = validator_names(meta)
        exported.extend(names)
        lines.append(f"from .{meta.function_name} import {', '.join(names)}")
    lines.append("")
    lines.append("__all__ = [")
    lines.extend(f'{INDENT}"{name}",' for name in sorted(exported))
    lines.append("]")
    return GeneratedFile(name="server/__init__.py", content="\n".join(lines) + "\n")
