"""CLI entry point for openapi-craft."""

import logging
from pathlib import Path

import click

from openapi_craft.config import GenerationOptions
from openapi_craft.errors import GenerationError
from openapi_craft.generator.pipeline import generate as generate_files
from openapi_craft.generator.responses import sort_status_codes
from openapi_craft.parser.loader import apply_generated_operation_ids, iter_operations, load_document


def _load(doc_path: Path) -> dict:
    doc = load_document(doc_path)
    added = apply_generated_operation_ids(doc)
    if added:
        click.echo(f"Generated {added} missing operationIds.")
    return doc


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
def main(verbose: bool):
    """openapi-craft: typed, validated Python clients from OpenAPI documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(file_okay=False, path_type=Path), help="Output package directory.")
@click.option("--client/--no-client", default=True, help="Emit client operations.")
@click.option("--server", is_flag=True, help="Emit strict server-side validators.")
@click.option("--strict", is_flag=True, help="Reject unknown fields in regular schemas too.")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Worker threads for emission.")
def generate(doc_path: Path, output: Path, client: bool, server: bool, strict: bool, concurrency: int | None):
    """Generate a Python package from an OpenAPI 3.x document."""
    try:
        options = GenerationOptions.from_env(
            generate_client=client,
            generate_server=server or None,
            strict_validation=strict or None,
            concurrency=concurrency,
        )
        click.echo(f"Loading {doc_path}...")
        doc = _load(doc_path)
        files = generate_files(doc, options)
    except GenerationError as e:
        raise click.ClickException(str(e)) from e

    output.mkdir(parents=True, exist_ok=True)
    for generated in files:
        file_path = output / generated.name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(generated.content, encoding="utf-8")
        click.echo(f"  Created {file_path}")

    click.echo(f"Generated {len(files)} files in {output}")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(doc_path: Path):
    """List operations with their declared status codes."""
    try:
        doc = _load(doc_path)
    except GenerationError as e:
        raise click.ClickException(str(e)) from e

    count = 0
    for ref in iter_operations(doc):
        statuses = sort_status_codes(list((ref.operation.get("responses") or {}).keys()))
        click.echo(f"{ref.operation_id}  {ref.method.upper()} {ref.path}  [{', '.join(statuses)}]")
        count += 1
    click.echo(f"Found {count} operations.")
