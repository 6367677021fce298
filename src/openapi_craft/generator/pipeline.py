"""Generation pipeline.

One single-threaded pre-pass repairs schema name collisions and rewrites
references. Only after it returns are schemas and operations emitted,
concurrently and without shared mutable state, on a bounded pool.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from openapi_craft.config import GenerationOptions
from openapi_craft.errors import MissingOperationIdError
from openapi_craft.generator.client import render_client_init, render_operation_module
from openapi_craft.generator.operations import OperationMetadata, extract_operation_metadata
from openapi_craft.generator.schemas import RenderedSchema, render_schema_module, render_schemas_init
from openapi_craft.generator.server import render_server_init, render_server_module
from openapi_craft.generator.templates import render_package_init, render_support_module
from openapi_craft.generator.validator import validate_files
from openapi_craft.parser.base import GeneratedFile, OperationRef
from openapi_craft.parser.content_types import inline_schemas
from openapi_craft.parser.loader import iter_operations
from openapi_craft.parser.naming import STRICT_SUFFIX, NameRegistry, assign_function_names
from openapi_craft.parser.references import prepare_document

logger = logging.getLogger(__name__)


def run_bounded(tasks: list[Callable[[], Any]], concurrency: int) -> list[Any]:
    """Run tasks on at most ``concurrency`` threads; results keep submission order.

    The first failure cancels everything not yet started and is re-raised.
    """
    if not tasks:
        return []
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        futures = [pool.submit(task) for task in tasks]
        results = []
        try:
            for future in futures:
                results.append(future.result())
        except Exception:
            for future in futures:
                future.cancel()
            raise
    return results


def _schema_tasks(
    doc: dict,
    registry: NameRegistry,
    refs: list[OperationRef],
    options: GenerationOptions,
) -> list[Callable[[], RenderedSchema]]:
    named: list[tuple[str, Any]] = [
        (registry.identifiers[name], registry.schema(name)) for name in registry.schema_names()
    ]
    for ref in refs:
        named.extend(inline_schemas(ref.operation, registry.type_base(ref.operation_id), doc))

    tasks = []
    for class_name, schema in named:
        tasks.append(
            lambda c=class_name, s=schema: render_schema_module(
                c, s, registry, forbid_extra=options.strict_validation
            )
        )
        if options.generate_server:
            tasks.append(
                lambda c=class_name, s=schema: render_schema_module(f"{c}{STRICT_SUFFIX}", s, registry, strict=True)
            )
    return tasks


def _operation_task(
    ref: OperationRef,
    doc: dict,
    registry: NameRegistry,
    function_name: str,
    options: GenerationOptions,
) -> Callable[[], tuple[list[OperationMetadata], list[GeneratedFile]]]:
    def task() -> tuple[list[OperationMetadata], list[GeneratedFile]]:
        metas, files = [], []
        if options.generate_client:
            meta = extract_operation_metadata(ref, doc, registry, function_name)
            metas.append(meta)
            files.append(render_operation_module(meta, registry))
        if options.generate_server:
            strict_meta = extract_operation_metadata(ref, doc, registry, function_name, strict=True)
            metas.append(strict_meta)
            files.append(render_server_module(strict_meta))
        return metas, files

    return task


def generate(document: dict, options: GenerationOptions | None = None) -> list[GeneratedFile]:
    """Generate the whole package for one OpenAPI document.

    Returns artifacts sorted by name; identical input gives identical output.
    """
    options = options or GenerationOptions()
    doc, registry = prepare_document(document)

    refs = list(iter_operations(doc))
    for ref in refs:
        if not ref.operation_id:
            raise MissingOperationIdError(ref.method, ref.path)
    function_names = assign_function_names([ref.operation_id for ref in refs])

    schema_tasks = _schema_tasks(doc, registry, refs, options)
    operation_tasks = [
        _operation_task(ref, doc, registry, function_names[ref.operation_id], options) for ref in refs
    ]
    logger.info(
        "emitting %d schema modules and %d operations (concurrency %d)",
        len(schema_tasks),
        len(operation_tasks),
        options.concurrency,
    )
    results = run_bounded([*schema_tasks, *operation_tasks], options.concurrency)
    schemas: list[RenderedSchema] = results[: len(schema_tasks)]
    operations = results[len(schema_tasks):]

    title = (doc.get("info") or {}).get("title")
    files = [
        GeneratedFile(name="__init__.py", content=render_package_init(title if isinstance(title, str) else None)),
        GeneratedFile(name="config.py", content=render_support_module()),
        render_schemas_init(schemas),
    ]
    files.extend(schema.to_file() for schema in schemas)

    client_metas, server_metas = [], []
    for metas, operation_files in operations:
        files.extend(operation_files)
        for meta in metas:
            (server_metas if meta.response_union.strict else client_metas).append(meta)
    if options.generate_client:
        files.append(render_client_init(client_metas))
    if options.generate_server:
        files.append(render_server_init(server_metas))

    validate_files(files)
    return sorted(files, key=lambda f: f.name)
