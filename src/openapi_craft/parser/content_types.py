"""Per-operation content type extraction.

Content type lists keep declaration order: the first entry is the
default content type of that body.
"""

from typing import Any

from openapi_craft.parser.base import ContentTypeMapping, RequestContentTypes, ResponseContentTypes
from openapi_craft.parser.naming import inline_type_name, request_type_suffix, response_type_suffix
from openapi_craft.parser.pointers import resolve_local_ref


def is_json_like(content_type: str) -> bool:
    """True for */json and *+json media types (parameters ignored)."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.endswith("/json") or media_type.endswith("+json")


def _content_mappings(content: Any) -> list[ContentTypeMapping]:
    if not isinstance(content, dict):
        return []
    mappings = []
    for content_type, media in content.items():
        schema = media.get("schema") if isinstance(media, dict) else None
        mappings.append(ContentTypeMapping(content_type=str(content_type), schema_object=schema))
    return mappings


def extract_request_content_types(request_body: dict | None) -> RequestContentTypes:
    """Content types accepted by a (dereferenced) request body."""
    if not request_body:
        return RequestContentTypes(is_required=False, content_types=[])
    return RequestContentTypes(
        is_required=bool(request_body.get("required", False)),
        content_types=_content_mappings(request_body.get("content")),
    )


def extract_response_content_types(operation: dict, doc: dict | None = None) -> list[ResponseContentTypes]:
    """One entry per declared status code (including "default"), in declaration order.

    Entries without a schema are kept: they prove the content type exists
    even though its payload is not validated.
    """
    result = []
    for status_code, response in (operation.get("responses") or {}).items():
        if doc is not None:
            response = resolve_local_ref(doc, response)
        content = response.get("content") if isinstance(response, dict) else None
        result.append(
            ResponseContentTypes(status_code=str(status_code), content_types=_content_mappings(content))
        )
    return result


def request_body_of(operation: dict, doc: dict | None = None) -> dict | None:
    body = operation.get("requestBody")
    if body is not None and doc is not None:
        body = resolve_local_ref(doc, body)
    return body if isinstance(body, dict) else None


def inline_schemas(operation: dict, type_base: str, doc: dict | None = None) -> list[tuple[str, dict]]:
    """(type name, schema) for every inline request/response schema of an operation."""
    found: list[tuple[str, dict]] = []
    request = extract_request_content_types(request_body_of(operation, doc))
    for position, mapping in enumerate(request.content_types):
        if _is_inline(mapping.schema_object):
            found.append((inline_type_name(type_base, request_type_suffix(position)), mapping.schema_object))

    for group in extract_response_content_types(operation, doc):
        for position, mapping in enumerate(group.content_types):
            if _is_inline(mapping.schema_object):
                suffix = response_type_suffix(group.status_code, position)
                found.append((inline_type_name(type_base, suffix), mapping.schema_object))
    return found


def _is_inline(schema: Any) -> bool:
    return isinstance(schema, dict) and "$ref" not in schema
