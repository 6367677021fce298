"""Validates generated code files for syntax correctness."""

import ast

from openapi_craft.errors import EmittedCodeError
from openapi_craft.parser.base import GeneratedFile


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python files for syntax errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".py"):
            continue
        if not content.strip():
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


def validate_files(files: list[GeneratedFile]) -> None:
    """Raise EmittedCodeError if any generated module fails to parse."""
    errors = validate_python({f.name: f.content for f in files})
    if errors:
        raise EmittedCodeError(errors)
