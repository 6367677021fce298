"""Per-operation metadata.

Created once per operation after the document is prepared, consumed by
the client and server emitters, then discarded. Nothing here is shared
between operations.
"""

from pydantic import BaseModel

from openapi_craft.errors import MissingOperationIdError
from openapi_craft.generator.responses import ResponseAnalysis, analyze_response_structure
from openapi_craft.generator.unions import RequestBodyMap, ResponseUnion, build_request_body_map, build_response_map
from openapi_craft.parser.base import OperationRef, ParameterGroups
from openapi_craft.parser.content_types import extract_response_content_types
from openapi_craft.parser.naming import NameRegistry, to_snake_case
from openapi_craft.parser.parameters import extract_parameter_groups


class OperationMetadata(BaseModel):
    """Everything the emitters need to know about one operation."""

    operation_id: str
    function_name: str
    type_base: str
    method: str
    path: str
    summary: str = ""
    description: str = ""
    parameter_groups: ParameterGroups
    body_info: RequestBodyMap
    response_analysis: ResponseAnalysis
    response_union: ResponseUnion
    accept: list[str] = []
    type_imports: set[str] = set()


def _accept_content_types(operation: dict, doc: dict) -> list[str]:
    found: list[str] = []
    for group in extract_response_content_types(operation, doc):
        for mapping in group.content_types:
            if mapping.content_type not in found:
                found.append(mapping.content_type)
    return found


def extract_operation_metadata(
    ref: OperationRef,
    doc: dict,
    registry: NameRegistry,
    function_name: str | None = None,
    strict: bool = False,
) -> OperationMetadata:
    """Analyze one operation of a prepared document (loose or strict flavor)."""
    operation_id = ref.operation_id
    if not operation_id:
        raise MissingOperationIdError(ref.method, ref.path)

    type_imports: set[str] = set()
    operation = ref.operation
    body_info = build_request_body_map(operation, operation_id, registry, type_imports, strict=strict, doc=doc)
    response_union = build_response_map(operation, operation_id, registry, type_imports, strict=strict, doc=doc)
    # Strict identifiers are only recorded by the union builders above.
    analysis = analyze_response_structure(operation, operation_id, registry, set() if strict else type_imports, doc)

    return OperationMetadata(
        operation_id=operation_id,
        function_name=function_name or to_snake_case(operation_id),
        type_base=registry.type_base(operation_id),
        method=ref.method,
        path=ref.path,
        summary=str(operation.get("summary") or ""),
        description=str(operation.get("description") or ""),
        parameter_groups=extract_parameter_groups(ref, doc),
        body_info=body_info,
        response_analysis=analysis,
        response_union=response_union,
        accept=_accept_content_types(operation, doc),
        type_imports=type_imports,
    )
