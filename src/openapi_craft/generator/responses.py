"""Response structure analysis.

Pure derivations: each ResponseInfo is computed from one status code's
response object and never changes afterwards.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from openapi_craft.parser.base import ContentTypeMapping
from openapi_craft.parser.content_types import extract_response_content_types, is_json_like
from openapi_craft.parser.naming import NameRegistry, response_type_suffix

logger = logging.getLogger(__name__)


class ContentTypeAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    all_content_types: list[str]
    has_json_like: bool
    has_non_json: bool
    has_mixed_content_types: bool


class ParsingStrategy(BaseModel):
    """How a response body is decoded and whether it is validated."""

    model_config = ConfigDict(frozen=True)

    is_json_like: bool
    use_validation: bool
    requires_runtime_content_type_check: bool


class ResponseInfo(BaseModel):
    """Analysis of one (status code, primary content type) pair."""

    model_config = ConfigDict(frozen=True)

    status_code: str
    content_type: str | None
    has_schema: bool
    type_name: str | None
    parsing_strategy: ParsingStrategy


class ResponseAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    responses: list[ResponseInfo]
    has_response_map: bool

    @property
    def status_codes(self) -> list[str]:
        return [info.status_code for info in self.responses]


def analyze_content_types(mappings: list[ContentTypeMapping]) -> ContentTypeAnalysis:
    all_content_types = [m.content_type for m in mappings]
    has_json_like = any(is_json_like(ct) for ct in all_content_types)
    has_non_json = any(not is_json_like(ct) for ct in all_content_types)
    return ContentTypeAnalysis(
        all_content_types=all_content_types,
        has_json_like=has_json_like,
        has_non_json=has_non_json,
        has_mixed_content_types=has_json_like and has_non_json,
    )


def determine_parsing_strategy(
    content_type: str,
    has_schema: bool,
    analysis: ContentTypeAnalysis,
    has_response_map: bool,
) -> ParsingStrategy:
    json_like = is_json_like(content_type) if content_type else False
    return ParsingStrategy(
        is_json_like=json_like,
        use_validation=has_schema and json_like,
        # Mixed JSON/non-JSON bodies can only be told apart by the runtime Content-Type header.
        requires_runtime_content_type_check=analysis.has_mixed_content_types and has_response_map,
    )


def primary_mapping(mappings: list[ContentTypeMapping]) -> ContentTypeMapping | None:
    """First content type carrying a schema, else the first declared one."""
    for mapping in mappings:
        if mapping.schema_object is not None:
            return mapping
    return mappings[0] if mappings else None


def build_response_info(
    status_code: str,
    mappings: list[ContentTypeMapping],
    operation_id: str,
    registry: NameRegistry,
    type_imports: set[str],
    has_response_map: bool,
) -> ResponseInfo:
    primary = primary_mapping(mappings)
    content_type = primary.content_type if primary else None
    has_schema = primary is not None and primary.schema_object is not None

    type_name = None
    if has_schema:
        position = mappings.index(primary)
        type_name = registry.resolve_type_name(
            primary.schema_object,
            operation_id,
            response_type_suffix(status_code, position),
            type_imports,
        )

    return ResponseInfo(
        status_code=status_code,
        content_type=content_type,
        has_schema=has_schema,
        type_name=type_name,
        parsing_strategy=determine_parsing_strategy(
            content_type or "",
            has_schema,
            analyze_content_types(mappings),
            has_response_map,
        ),
    )


def sort_status_codes(codes: list[Any]) -> list[str]:
    """Ascending numeric order with "default" last; other codes are dropped."""
    numeric = []
    has_default = False
    for code in codes:
        code = str(code)
        if code == "default":
            has_default = True
        elif code.isdigit():
            numeric.append(code)
        else:
            logger.warning("skipping unsupported status code %r", code)
    numeric.sort(key=int)
    return numeric + (["default"] if has_default else [])


def analyze_response_structure(
    operation: dict,
    operation_id: str,
    registry: NameRegistry,
    type_imports: set[str],
    doc: dict | None = None,
) -> ResponseAnalysis:
    """ResponseInfo for every declared status code, sorted, default last."""
    groups = {group.status_code: group.content_types for group in extract_response_content_types(operation, doc)}
    has_response_map = any(m.schema_object is not None for mappings in groups.values() for m in mappings)

    responses = [
        build_response_info(code, groups[code], operation_id, registry, type_imports, has_response_map)
        for code in sort_status_codes(list(groups))
    ]
    return ResponseAnalysis(responses=responses, has_response_map=has_response_map)
