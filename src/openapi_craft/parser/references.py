"""Document-wide schema collision repair and reference rewriting.

``prepare_document`` is the single-threaded pre-pass of a generation
run. It must return before any per-operation work starts, because every
later step assumes final schema identifiers.
"""

import copy
import logging
from typing import Any

from openapi_craft.parser.content_types import inline_schemas
from openapi_craft.parser.loader import iter_operations
from openapi_craft.parser.naming import (
    RESERVED_NAMES,
    SCHEMA_REF_PREFIX,
    STRICT_SUFFIX,
    NameRegistry,
    assign_type_bases,
    operation_type_names,
    sanitize_identifier,
    unescape_pointer,
)

logger = logging.getLogger(__name__)


def operation_type_bases(doc: dict) -> dict[str, str]:
    return assign_type_bases([ref.operation_id for ref in iter_operations(doc) if ref.operation_id])


def synthetic_type_names(doc: dict, type_bases: dict[str, str] | None = None) -> set[str]:
    """Type names the generator itself declares for this document's operations."""
    if type_bases is None:
        type_bases = operation_type_bases(doc)
    names: set[str] = set()
    for ref in iter_operations(doc):
        if not ref.operation_id:
            continue
        base = type_bases[ref.operation_id]
        names.update(operation_type_names(base))
        names.update(name for name, _ in inline_schemas(ref.operation, base, doc))
    return names


def plan_schema_renames(schema_names: list[str], reserved: frozenset[str] | set[str]) -> dict[str, str]:
    """Map every colliding schema name to ``<Name>Schema``, ``<Name>Schema2``, ...

    A name collides when its sanitized identifier is reserved or was
    already claimed by an earlier schema.
    """
    claimed = {sanitize_identifier(name) for name in schema_names}
    taken: set[str] = set()
    renames: dict[str, str] = {}
    for name in schema_names:
        identifier = sanitize_identifier(name)
        if identifier not in reserved and identifier not in taken:
            taken.add(identifier)
            continue
        candidate, counter = f"{identifier}Schema", 2
        while candidate in reserved or candidate in taken or candidate in claimed:
            candidate = f"{identifier}Schema{counter}"
            counter += 1
        renames[name] = candidate
        taken.add(candidate)
    return renames


def rewrite_schema_references(node: Any, renames: dict[str, str]) -> int:
    """Depth-first rewrite of every "#/components/schemas/<old>" reference.

    Iterative with a visited set: YAML anchors can make nodes shared or
    cyclic. Returns the number of rewritten references.
    """
    if not renames:
        return 0
    rewritten = 0
    visited: set[int] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if id(current) in visited:
            continue
        visited.add(id(current))
        if isinstance(current, dict):
            ref = current.get("$ref")
            if isinstance(ref, str) and ref.startswith(SCHEMA_REF_PREFIX):
                target = unescape_pointer(ref[len(SCHEMA_REF_PREFIX):])
                if target in renames:
                    current["$ref"] = SCHEMA_REF_PREFIX + renames[target]
                    rewritten += 1
            stack.extend(v for v in reversed(list(current.values())) if isinstance(v, (dict, list)))
        elif isinstance(current, list):
            stack.extend(v for v in reversed(current) if isinstance(v, (dict, list)))
    return rewritten


def prepare_document(doc: dict) -> tuple[dict, NameRegistry]:
    """Collision-repair a copy of ``doc`` and build the run's name registry."""
    prepared = copy.deepcopy(doc)
    components = prepared.get("components") or {}
    schemas = components.get("schemas") or {}

    type_bases = operation_type_bases(prepared)
    synthetic = synthetic_type_names(prepared, type_bases)
    # Strict variants of every schema are generated names too.
    strict_variants = {f"{name}{STRICT_SUFFIX}" for name in synthetic}
    strict_variants.update(f"{sanitize_identifier(name)}{STRICT_SUFFIX}" for name in schemas)
    reserved = frozenset(RESERVED_NAMES | synthetic | strict_variants)
    renames = plan_schema_renames(list(schemas), reserved)

    if renames:
        # Rebuild in declaration order so emission order stays stable.
        components["schemas"] = {renames.get(name, name): schema for name, schema in schemas.items()}
        rewritten = rewrite_schema_references(prepared, renames)
        for old, new in renames.items():
            logger.info("renamed schema %s -> %s", old, new)
        logger.debug("rewrote %d schema references", rewritten)
        schemas = components["schemas"]

    return prepared, NameRegistry(schemas, renames, reserved, type_bases)
