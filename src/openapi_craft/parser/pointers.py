"""Local JSON pointer resolution for component references."""

from typing import Any

from openapi_craft.errors import UnresolvedReferenceError
from openapi_craft.parser.naming import unescape_pointer


def follow_pointer(document: dict, ref: str) -> Any:
    """Return the node a local "#/..." pointer designates."""
    if not ref.startswith("#/"):
        raise UnresolvedReferenceError(ref, "unsupported reference")
    node: Any = document
    for token in ref[2:].split("/"):
        key = unescape_pointer(token)
        if isinstance(node, dict) and key in node:
            node = node[key]
        elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node = node[int(key)]
        else:
            raise UnresolvedReferenceError(ref)
    return node


def resolve_local_ref(document: dict, node: Any) -> Any:
    """Follow $ref chains (responses, request bodies, parameters) to the real object."""
    seen: set[str] = set()
    while isinstance(node, dict) and "$ref" in node:
        ref = node["$ref"]
        if not isinstance(ref, str):
            raise UnresolvedReferenceError(str(ref), "unsupported reference")
        if ref in seen:
            raise UnresolvedReferenceError(ref, "circular reference")
        seen.add(ref)
        node = follow_pointer(document, ref)
    return node
