"""Client operation emission.

One module per operation under ``client/``: a params TypedDict, request
and response maps, the manual and forced response unions, and the
operation function with overloads selecting between them.
"""

import json
import re

from openapi_craft.generator.operations import OperationMetadata
from openapi_craft.generator.schemas import TypeTranslator, render_union
from openapi_craft.generator.templates import INDENT, render_response_handlers
from openapi_craft.parser.base import GeneratedFile, Param
from openapi_craft.parser.naming import NameRegistry

CONFIG_NAMES = (
    "ApiResponse",
    "ApiResponseError",
    "ApiResponseWithForcedParse",
    "ApiResponseWithParse",
    "ForcedValidationConfig",
    "GlobalConfig",
    "ManualValidationConfig",
    "build_path",
    "build_validated_response",
    "global_config",
    "parse_json_body",
    "parse_response_body",
    "send_request",
    "unexpected_response",
)

TYPING_NAMES = ("Any", "Literal", "TypedDict", "Union", "overload")


def used_names(candidates: tuple[str, ...] | list[str], source: str) -> list[str]:
    return [name for name in candidates if re.search(rf"\b{re.escape(name)}\b", source)]


def render_import(module: str, names: list[str]) -> list[str]:
    if not names:
        return []
    single = f"from {module} import {', '.join(names)}"
    if len(single) <= 100:
        return [single]
    return [f"from {module} import (", *(f"{INDENT}{name}," for name in names), ")"]


def docstring_text(text: str) -> str:
    return " ".join(text.split()).replace("\\", "\\\\").replace('"', '\\"')


def params_type_name(meta: OperationMetadata) -> str:
    return f"{meta.type_base}Params"


def _all_params(meta: OperationMetadata) -> list[Param]:
    groups = meta.parameter_groups
    return [*groups.path_params, *groups.query_params, *groups.header_params]


def render_params_type(meta: OperationMetadata, translator: TypeTranslator) -> str:
    """Functional TypedDict: parameter names are not always identifiers."""
    entries: list[tuple[str, str]] = []
    for param in _all_params(meta):
        entries.append((param.name, translator.translate(param.schema_object)))

    body = meta.body_info
    if body.content_types:
        body_types = [body.request_map.get(ct) or translator.any() for ct in body.content_types]
        body_type = render_union(body_types)
        if body_type.startswith("Union["):
            translator.names.add("Union")
        entries.append(("body", body_type))
        entries.append(("contentType", f"Literal[{', '.join(json.dumps(ct) for ct in body.content_types)}]"))

    name = params_type_name(meta)
    if not entries:
        return f'{name} = TypedDict("{name}", {{}}, total=False)'
    lines = [f"{name} = TypedDict(", f'{INDENT}"{name}",', f"{INDENT}{{"]
    lines.extend(f"{INDENT * 2}{json.dumps(key)}: {value}," for key, value in entries)
    lines.extend([f"{INDENT}}},", f"{INDENT}total=False,", ")"])
    return "\n".join(lines)


def _mapping_literal(params: list[Param]) -> str:
    items = []
    for param in params:
        access = f"params[{json.dumps(param.name)}]" if param.location == "path" else f"params.get({json.dumps(param.name)})"
        items.append(f"{json.dumps(param.name)}: {access}")
    return "{" + ", ".join(items) + "}"


def render_operation_body(meta: OperationMetadata) -> str:
    groups = meta.parameter_groups
    lines = ["config = global_config if config is None else config", "params = params or {}"]
    if groups.path_params:
        lines.append(f"path = build_path({json.dumps(meta.path)}, {_mapping_literal(groups.path_params)})")
    else:
        lines.append(f"path = {json.dumps(meta.path)}")

    call_args = ["config", json.dumps(meta.method.upper()), "path"]
    if groups.query_params:
        lines.append(f"query = {_mapping_literal(groups.query_params)}")
        call_args.append("query=query")
    if groups.header_params:
        lines.append(f"headers = {_mapping_literal(groups.header_params)}")
        call_args.append("headers=headers")
    if meta.body_info.content_types:
        lines.append(f'content_type = params.get("contentType", {json.dumps(meta.body_info.default_content_type)})')
        call_args.extend(['body=params.get("body")', "content_type=content_type"])
    if meta.accept:
        call_args.append(f"accept={json.dumps(', '.join(meta.accept))}")

    lines.append("try:")
    lines.append(f"{INDENT}response = send_request(")
    lines.extend(f"{INDENT * 2}{arg}," for arg in call_args)
    lines.append(f"{INDENT})")
    lines.append("except requests.RequestException as error:")
    lines.append(f'{INDENT}return ApiResponseError(kind="unexpected-error", error=error)')
    lines.append("")

    body = "\n".join(f"{INDENT}{line}" if line else "" for line in lines)
    return body + "\n" + render_response_handlers(
        meta.response_analysis.responses, meta.response_union.response_map_name
    )


def render_operation_function(meta: OperationMetadata) -> str:
    name = meta.function_name
    params_type = params_type_name(meta)
    union = meta.response_union
    manual, forced = union.union_type_name, union.forced_union_type_name

    doc_lines = [docstring_text(meta.summary) if meta.summary else f"{meta.operation_id} operation."]
    if meta.description and meta.description != meta.summary:
        doc_lines.extend(["", docstring_text(meta.description)])
    doc_lines.extend(["", f"{meta.method.upper()} {meta.path}"])
    docstring = [f'{INDENT}"""{doc_lines[0]}', *(f"{INDENT}{line}" if line else "" for line in doc_lines[1:]), f'{INDENT}"""']

    signature = f"{INDENT}params: {params_type} | None = None, config: GlobalConfig | None = None"
    return "\n".join([
        "@overload",
        f"def {name}(params: {params_type} | None, config: ForcedValidationConfig) -> {forced}: ...",
        "",
        "",
        "@overload",
        f"def {name}(",
        f"{INDENT}params: {params_type} | None = None, config: ManualValidationConfig | None = None",
        f") -> {manual}: ...",
        "",
        "",
        "@overload",
        f"def {name}(",
        signature,
        f") -> {manual} | {forced}: ...",
        "",
        "",
        f"def {name}(",
        signature,
        f") -> {manual} | {forced}:",
        *docstring,
        render_operation_body(meta),
    ])


def render_operation_module(meta: OperationMetadata, registry: NameRegistry) -> GeneratedFile:
    translator = TypeTranslator(registry)
    union = meta.response_union

    sections = [render_params_type(meta, translator)]
    if meta.body_info.should_generate_request_map:
        sections.append(meta.body_info.request_map_type)
    sections.append(union.response_map_type)
    sections.append(union.union_type_definition)
    sections.append(union.forced_union_type_definition)
    declarations = "\n\n".join(sections)
    function = render_operation_function(meta)
    source = declarations + "\n" + function

    schema_names = sorted(meta.type_imports | set(translator.refs))
    header = [
        f'"""{meta.method.upper()} {docstring_text(meta.path)} ({meta.operation_id})."""',
        "",
        "from __future__ import annotations",
        "",
    ]
    stdlib = []
    if "Decimal" in translator.names:
        stdlib.append("from decimal import Decimal")
    datetime_names = sorted(n for n in translator.names if n in ("date", "datetime"))
    if datetime_names:
        stdlib.insert(0, f"from datetime import {', '.join(datetime_names)}")
    stdlib.extend(render_import("typing", used_names(TYPING_NAMES, source)))
    if "UUID" in translator.names:
        stdlib.append("from uuid import UUID")
    header.extend(stdlib)
    header.extend(["", "import requests", ""])
    header.extend(render_import("..config", used_names(CONFIG_NAMES, source)))
    header.extend(render_import("..schemas", schema_names))

    content = "\n".join(header) + "\n\n" + declarations + "\n\n\n" + function + "\n"
    return GeneratedFile(name=f"client/{meta.function_name}.py", content=content)


def render_client_init(metas: list[OperationMetadata]) -> GeneratedFile:
    names = sorted(meta.function_name for meta in metas)
    lines = ['"""Generated API operations."""', ""]
    lines.append("from ..config import configure_operations, global_config, is_parsed")
    lines.extend(f"from .{name} import {name}" for name in names)
    lines.append("")
    if names:
        lines.append("operations = {")
        lines.extend(f'{INDENT}"{name}": {name},' for name in names)
        lines.append("}")
    else:
        lines.append("operations = {}")
    lines.append("")
    exported = sorted([*names, "configure_operations", "global_config", "is_parsed", "operations"])
    lines.append("__all__ = [")
    lines.extend(f'{INDENT}"{name}",' for name in exported)
    lines.append("]")
    return GeneratedFile(name="client/__init__.py", content="\n".join(lines) + "\n")
