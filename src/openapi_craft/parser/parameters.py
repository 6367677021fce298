"""Operation parameter extraction."""

from openapi_craft.parser.base import OperationRef, Param, ParameterGroups
from openapi_craft.parser.pointers import resolve_local_ref


def extract_parameter_groups(ref: OperationRef, doc: dict) -> ParameterGroups:
    """Split path/query/header parameters; operation-level entries override path-level ones."""
    merged: dict[tuple[str, str], dict] = {}
    for raw in [*ref.path_parameters, *(ref.operation.get("parameters") or [])]:
        param = resolve_local_ref(doc, raw)
        if not isinstance(param, dict) or "name" not in param:
            continue
        merged[(param["name"], param.get("in", "query"))] = param

    groups = ParameterGroups()
    for (name, location), p in merged.items():
        param = Param(
            name=name,
            location=location,
            required=bool(p.get("required", location == "path")),
            schema_object=p.get("schema") or {},
            description=p.get("description", ""),
        )
        if location == "path":
            groups.path_params.append(param)
        elif location == "query":
            groups.query_params.append(param)
        elif location == "header":
            groups.header_params.append(param)
    return groups
