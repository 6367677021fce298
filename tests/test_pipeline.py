import threading
import time
from pathlib import Path

import pytest

from openapi_craft.config import GenerationOptions
from openapi_craft.errors import EmittedCodeError, MissingOperationIdError
from openapi_craft.generator import pipeline
from openapi_craft.generator.pipeline import generate, run_bounded
from openapi_craft.generator.templates import SUPPORT_MODULE_PATH
from openapi_craft.parser.loader import load_document

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def petstore():
    return load_document(FIXTURES / "petstore.yaml")


def by_name(files):
    return {f.name: f.content for f in files}


class TestRunBounded:
    def test_results_keep_submission_order(self):
        def task(i):
            time.sleep(0.01 * (5 - i % 5))
            return i

        results = run_bounded([lambda i=i: task(i) for i in range(10)], concurrency=4)
        assert results == list(range(10))

    def test_concurrency_is_bounded(self):
        lock = threading.Lock()
        active, peak = [0], [0]

        def task():
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.02)
            with lock:
                active[0] -= 1

        run_bounded([task] * 12, concurrency=3)
        assert peak[0] <= 3

    def test_first_failure_is_raised(self):
        def boom():
            raise ValueError("bad schema")

        with pytest.raises(ValueError, match="bad schema"):
            run_bounded([lambda: 1, boom, lambda: 3], concurrency=2)

    def test_empty(self):
        assert run_bounded([], concurrency=2) == []


class TestGenerate:
    def test_layout(self, petstore):
        files = by_name(generate(petstore))
        for expected in (
            "__init__.py",
            "config.py",
            "schemas/__init__.py",
            "schemas/Pet.py",
            "schemas/Owner.py",
            "schemas/NewPet.py",
            "schemas/ListPets200Response.py",
            "schemas/UploadFileRequest.py",
            "client/__init__.py",
            "client/list_pets.py",
            "client/get_pet_by_id.py",
            "client/upload_file.py",
        ):
            assert expected in files
        assert not any(name.startswith("server/") for name in files)
        assert not any(name.endswith("Strict.py") for name in files)

    def test_sorted_by_name(self, petstore):
        names = [f.name for f in generate(petstore)]
        assert names == sorted(names)

    def test_deterministic(self, petstore):
        first = generate(petstore, GenerationOptions(generate_server=True, concurrency=1))
        second = generate(petstore, GenerationOptions(generate_server=True, concurrency=8))
        assert first == second

    def test_input_document_untouched(self, petstore):
        generate(petstore)
        assert "ApiResponse" in petstore["components"]["schemas"]

    def test_support_module_copied_verbatim(self, petstore):
        files = by_name(generate(petstore))
        assert files["config.py"] == SUPPORT_MODULE_PATH.read_text(encoding="utf-8")
        assert files["__init__.py"] == '"""Petstore package."""\n'

    def test_colliding_schema_renamed(self, petstore):
        files = by_name(generate(petstore))
        assert "schemas/ApiResponseSchema.py" in files
        assert "schemas/ApiResponse.py" not in files
        assert "class ApiResponseSchema(BaseModel):" in files["schemas/ApiResponseSchema.py"]

    def test_server_flavor(self, petstore):
        files = by_name(generate(petstore, GenerationOptions(generate_server=True)))
        assert "schemas/PetStrict.py" in files
        assert "schemas/ListPets200ResponseStrict.py" in files
        assert "server/__init__.py" in files
        server = files["server/get_pet_by_id.py"]
        assert "def validate_get_pet_by_id_request(" in server
        assert "def validate_get_pet_by_id_response(" in server
        assert '        "application/json": PetStrict,\n' in server
        assert "from ..schemas import PetStrict" in server
        # Client modules never see strict identifiers.
        assert "Strict" not in files["client/get_pet_by_id.py"]

    def test_server_only(self, petstore):
        files = by_name(generate(petstore, GenerationOptions(generate_client=False, generate_server=True)))
        assert not any(name.startswith("client/") for name in files)
        assert "server/create_pet.py" in files

    def test_strict_validation_option(self, petstore):
        files = by_name(generate(petstore, GenerationOptions(strict_validation=True)))
        assert 'extra="forbid"' in files["schemas/Pet.py"]

    def test_get_pet_by_id_response_map(self, petstore):
        content = by_name(generate(petstore))["client/get_pet_by_id.py"]
        assert 'GetPetByIdResponseMap = {\n    "200": {\n        "application/json": Pet,\n    },\n}' in content
        assert (
            "GetPetByIdResponse = Union[\n"
            "    ApiResponseWithParse[Literal[200], Pet],\n"
            "    ApiResponse[Literal[404], None],\n"
            "    ApiResponseError,\n"
            "]"
        ) in content

    def test_missing_operation_id(self, petstore):
        del petstore["paths"]["/pets"]["get"]["operationId"]
        with pytest.raises(MissingOperationIdError, match="GET /pets"):
            generate(petstore)

    def test_function_name_collisions(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {
                "/a": {"get": {"operationId": "getItem", "responses": {"204": {"description": "ok"}}}},
                "/b": {"get": {"operationId": "get_item", "responses": {"204": {"description": "ok"}}}},
                "/c": {"get": {"operationId": "sendRequest", "responses": {"204": {"description": "ok"}}}},
            },
        }
        files = by_name(generate(doc))
        assert "client/get_item.py" in files
        assert "client/get_item2.py" in files
        assert "client/send_request_.py" in files

    def test_type_name_collisions(self):
        inline = {"200": {"description": "ok", "content": {"application/json": {"schema": {"type": "object"}}}}}
        doc = {
            "openapi": "3.0.0",
            "paths": {
                "/a": {"get": {"operationId": "getPet", "responses": inline}},
                "/b": {"post": {"operationId": "GetPet", "responses": inline}},
            },
        }
        files = generate(doc)
        names = [f.name for f in files]
        assert len(names) == len(set(names))
        contents = by_name(files)
        assert "schemas/GetPet200Response.py" in contents
        assert "schemas/GetPet2200Response.py" in contents
        assert "GetPet2Params = TypedDict(" in contents["client/get_pet2.py"]
        assert "GetPet2200Response" in contents["client/get_pet2.py"]

    def test_emitted_syntax_error_aborts(self, petstore, monkeypatch):
        monkeypatch.setattr(pipeline, "render_package_init", lambda title: "def broken(:\n")
        with pytest.raises(EmittedCodeError) as excinfo:
            generate(petstore)
        assert "__init__.py" in excinfo.value.errors

    def test_empty_document(self):
        files = by_name(generate({"openapi": "3.1.0", "paths": {}}))
        assert "operations = {}" in files["client/__init__.py"]
