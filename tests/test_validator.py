import pytest

from openapi_craft.errors import EmittedCodeError
from openapi_craft.generator.validator import validate_files, validate_python
from openapi_craft.parser.base import GeneratedFile


class TestValidatePython:
    def test_valid_code(self):
        errors = validate_python({"schemas/Pet.py": "import os\nx = 1\n"})
        assert errors == {}

    def test_syntax_error(self):
        errors = validate_python({"client/bad.py": "def foo(\n"})
        assert "client/bad.py" in errors
        assert "SyntaxError" in errors["client/bad.py"]

    def test_skips_non_python(self):
        errors = validate_python({"py.typed": "def (", "config.py": "x = 1"})
        assert errors == {}

    def test_skips_empty_init(self):
        errors = validate_python({"__init__.py": ""})
        assert errors == {}


class TestValidateFiles:
    def test_all_valid(self):
        validate_files([
            GeneratedFile(name="__init__.py", content='"""Pkg."""\n'),
            GeneratedFile(name="client/list_pets.py", content="def list_pets():\n    return None\n"),
        ])

    def test_python_error_raised(self):
        with pytest.raises(EmittedCodeError) as excinfo:
            validate_files([
                GeneratedFile(name="client/ok.py", content="x = 1\n"),
                GeneratedFile(name="client/bad.py", content="def foo(\n"),
            ])
        assert list(excinfo.value.errors) == ["client/bad.py"]
        assert "client/bad.py" in str(excinfo.value)
