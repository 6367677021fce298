"""Response maps and discriminated response unions.

Built per operation and in two flavors: loose (client) and strict
(server). The flavors share structure but resolve to different type
identifiers, so their types never mix.
"""

import json
from typing import Literal

from pydantic import BaseModel, ConfigDict

from openapi_craft.parser.content_types import extract_request_content_types, extract_response_content_types, request_body_of
from openapi_craft.parser.naming import (
    NameRegistry,
    request_type_suffix,
    response_type_suffix,
)
from openapi_craft.generator.responses import sort_status_codes

ERROR_TYPE = "ApiResponseError"


class UnionMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success", "void", "error"]
    status_code: str | None = None
    content_type: str | None = None
    data_type: str | None = None
    # Schema-less statuses that still declare content carry opaque data.
    has_content: bool = False


class ResponseUnion(BaseModel):
    model_config = ConfigDict(frozen=True)

    strict: bool
    response_map: dict[str, dict[str, str]]
    response_map_name: str
    response_map_type: str
    union_members: list[UnionMember]
    union_type_name: str
    union_type_definition: str
    forced_union_type_name: str | None = None
    forced_union_type_definition: str | None = None


class RequestBodyMap(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_required: bool
    content_types: list[str]
    default_content_type: str | None
    request_map: dict[str, str]
    request_map_name: str
    request_map_type: str
    should_generate_request_map: bool


def status_literal(status_code: str) -> str:
    return 'Literal["default"]' if status_code == "default" else f"Literal[{status_code}]"


def _resolver(registry: NameRegistry, strict: bool):
    return registry.resolve_strict_type_name if strict else registry.resolve_type_name


def build_response_map(
    operation: dict,
    operation_id: str,
    registry: NameRegistry,
    type_imports: set[str],
    strict: bool = False,
    doc: dict | None = None,
) -> ResponseUnion:
    """Response map (status -> content type -> identifier) plus the full response union."""
    resolve = _resolver(registry, strict)
    groups = {group.status_code: group.content_types for group in extract_response_content_types(operation, doc)}

    response_map: dict[str, dict[str, str]] = {}
    members: list[UnionMember] = []
    for status_code in sort_status_codes(list(groups)):
        mappings = groups[status_code]
        typed = {}
        for position, mapping in enumerate(mappings):
            if mapping.schema_object is None:
                continue
            type_name = resolve(
                mapping.schema_object,
                operation_id,
                response_type_suffix(status_code, position),
                type_imports,
            )
            typed[mapping.content_type] = type_name
            members.append(
                UnionMember(kind="success", status_code=status_code, content_type=mapping.content_type, data_type=type_name)
            )
        if typed:
            response_map[status_code] = typed
        else:
            members.append(UnionMember(kind="void", status_code=status_code, has_content=bool(mappings)))
    members.append(UnionMember(kind="error"))

    base = registry.type_base(operation_id)
    flavor = "Strict" if strict else ""
    map_name = f"{base}{flavor}ResponseMap"
    union_name = f"{base}{flavor}Response"

    forced_name = forced_definition = None
    if strict:
        definition = render_union_definition(union_name, members, "ApiResponse")
    else:
        definition = render_union_definition(union_name, members, "ApiResponseWithParse")
        forced_name = f"{base}ForcedResponse"
        forced_definition = render_union_definition(forced_name, members, "ApiResponseWithForcedParse")

    return ResponseUnion(
        strict=strict,
        response_map=response_map,
        response_map_name=map_name,
        response_map_type=render_response_map(map_name, response_map),
        union_members=members,
        union_type_name=union_name,
        union_type_definition=definition,
        forced_union_type_name=forced_name,
        forced_union_type_definition=forced_definition,
    )


def render_member(member: UnionMember, success_type: str) -> str:
    if member.kind == "error":
        return ERROR_TYPE
    literal = status_literal(member.status_code)
    if member.kind == "success":
        return f"{success_type}[{literal}, {member.data_type}]"
    return f"ApiResponse[{literal}, {'Any' if member.has_content else 'None'}]"


def render_union_definition(type_name: str, members: list[UnionMember], success_type: str) -> str:
    lines = [f"{type_name} = Union["]
    lines.extend(f"    {render_member(member, success_type)}," for member in members)
    lines.append("]")
    return "\n".join(lines)


def render_response_map(map_name: str, response_map: dict[str, dict[str, str]]) -> str:
    if not response_map:
        return f"{map_name}: dict[str, dict[str, Any]] = {{}}"
    lines = [f"{map_name} = {{"]
    for status_code, entries in response_map.items():
        lines.append(f"    {json.dumps(status_code)}: {{")
        lines.extend(f"        {json.dumps(ct)}: {type_name}," for ct, type_name in entries.items())
        lines.append("    },")
    lines.append("}")
    return "\n".join(lines)


def render_request_map(map_name: str, request_map: dict[str, str]) -> str:
    if not request_map:
        return f"{map_name}: dict[str, Any] = {{}}"
    lines = [f"{map_name} = {{"]
    lines.extend(f"    {json.dumps(ct)}: {type_name}," for ct, type_name in request_map.items())
    lines.append("}")
    return "\n".join(lines)


def build_request_body_map(
    operation: dict,
    operation_id: str,
    registry: NameRegistry,
    type_imports: set[str],
    strict: bool = False,
    doc: dict | None = None,
) -> RequestBodyMap:
    """Content type -> identifier for the request body; the first declared type is the default."""
    resolve = _resolver(registry, strict)
    request = extract_request_content_types(request_body_of(operation, doc))

    request_map = {}
    for position, mapping in enumerate(request.content_types):
        if mapping.schema_object is not None:
            request_map[mapping.content_type] = resolve(
                mapping.schema_object, operation_id, request_type_suffix(position), type_imports
            )

    map_name = f"{registry.type_base(operation_id)}{'Strict' if strict else ''}RequestMap"
    return RequestBodyMap(
        is_required=request.is_required,
        content_types=[m.content_type for m in request.content_types],
        default_content_type=request.default_content_type,
        request_map=request_map,
        request_map_name=map_name,
        request_map_type=render_request_map(map_name, request_map),
        should_generate_request_map=len(request.content_types) > 1,
    )
