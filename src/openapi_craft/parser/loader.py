"""OpenAPI document loader.

Reads an already-bundled OpenAPI 3.x document (YAML or JSON) and walks
its operations. Version upgrades and remote reference bundling are done
by external tooling before the document gets here.
"""

import logging
import re
from collections.abc import Iterator
from pathlib import Path

import yaml

from openapi_craft.errors import DocumentError
from openapi_craft.parser.base import OperationRef
from openapi_craft.parser.naming import capitalize

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch")


def load_document(file_path: Path) -> dict:
    """Load an OpenAPI document from a YAML or JSON file."""
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"cannot read {file_path}: {e}") from e
    return load_document_text(text)


def load_document_text(text: str) -> dict:
    """Parse document text; JSON is a subset of YAML so one parser covers both."""
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentError(f"invalid YAML/JSON: {e}") from e

    if not isinstance(doc, dict):
        raise DocumentError("document root must be a mapping")
    version = str(doc.get("openapi", ""))
    if not version.startswith("3."):
        if "swagger" in doc:
            raise DocumentError("Swagger 2.0 documents must be converted to OpenAPI 3.x first")
        raise DocumentError(f"unsupported OpenAPI version: {version or 'missing'}")
    return doc


def iter_operations(doc: dict) -> Iterator[OperationRef]:
    """Yield every supported operation in path order, then method order."""
    paths = doc.get("paths") or {}
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        path_parameters = path_item.get("parameters") or []
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                yield OperationRef(
                    path=str(path),
                    method=method,
                    operation=operation,
                    path_parameters=path_parameters,
                )


def generate_operation_id(method: str, path: str) -> str:
    """get /pets/{petId} -> getPetsPetId"""
    segments = [s for s in re.split(r"[^0-9A-Za-z]+", path) if s]
    return method.lower() + "".join(capitalize(s) for s in segments)


def apply_generated_operation_ids(doc: dict) -> int:
    """Fill in missing operationIds in place; returns how many were added."""
    taken = {ref.operation_id for ref in iter_operations(doc) if ref.operation_id}
    added = 0
    for path, path_item in (doc.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict) or operation.get("operationId"):
                continue
            candidate = generate_operation_id(method, str(path))
            base, counter = candidate, 2
            while candidate in taken:
                candidate = f"{base}{counter}"
                counter += 1
            operation["operationId"] = candidate
            taken.add(candidate)
            added += 1
            logger.debug("generated operationId %s for %s %s", candidate, method.upper(), path)
    return added
