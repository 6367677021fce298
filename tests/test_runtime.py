import json
from unittest.mock import MagicMock

import pytest
import requests
from pydantic import BaseModel, ConfigDict

from openapi_craft.runtime import (
    ApiResponseError,
    ApiResponseWithForcedParse,
    ApiResponseWithParse,
    BoundOperations,
    ForcedValidationConfig,
    GlobalConfig,
    ManualValidationConfig,
    Parsed,
    ParseFailure,
    build_path,
    build_validated_response,
    configure_operations,
    encode_request_body,
    get_response_content_type,
    global_config,
    is_parsed,
    parse_payload,
    parse_response_body,
    send_request,
    unexpected_response,
)


class Pet(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str


def make_response(status: int, body, content_type: str | None = "application/json") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    if content_type:
        response.headers["Content-Type"] = content_type
    if body is None:
        response._content = b""
    elif isinstance(body, bytes):
        response._content = body
    elif isinstance(body, str):
        response._content = body.encode()
    else:
        response._content = json.dumps(body).encode()
    return response


SCHEMAS = {"application/json": Pet}


class TestParsePayload:
    def test_success(self):
        result = parse_payload("application/json", {"id": 1, "name": "Rex"}, SCHEMAS)
        assert isinstance(result, Parsed)
        assert result.kind == "parsed"
        assert result.content_type == "application/json"
        assert result.parsed == Pet(id=1, name="Rex")

    def test_parse_error(self):
        result = parse_payload("application/json", {"id": "not a number"}, SCHEMAS)
        assert isinstance(result, ParseFailure)
        assert result.kind == "parse-error"

    def test_missing_schema(self):
        result = parse_payload("text/plain", "hello", SCHEMAS)
        assert result.kind == "missing-schema"
        assert "text/plain" in result.error

    def test_deserializer_runs_before_validation(self):
        result = parse_payload(
            "application/json",
            {"pet": {"id": 2, "name": "Tom"}},
            SCHEMAS,
            {"application/json": lambda data, content_type: data["pet"]},
        )
        assert result.parsed.name == "Tom"

    def test_deserializer_error_captured(self):
        def boom(data, content_type):
            raise ValueError("bad envelope")

        result = parse_payload("application/json", {}, SCHEMAS, {"application/json": boom})
        assert result.kind == "deserialization-error"
        assert isinstance(result.error, ValueError)

    def test_deserializer_error_wins_over_missing_schema(self):
        def boom(data, content_type):
            raise RuntimeError("nope")

        result = parse_payload("text/csv", "a,b", SCHEMAS, {"text/csv": boom})
        assert result.kind == "deserialization-error"

    def test_non_model_schema(self):
        result = parse_payload("application/json", ["1", 2], {"application/json": list[int]})
        assert result.parsed == [1, 2]

    def test_idempotent(self):
        first = parse_payload("application/json", {"id": 1, "name": "a"}, SCHEMAS)
        second = parse_payload("application/json", {"id": 1, "name": "a"}, SCHEMAS)
        assert first == second


class TestValidationDuality:
    @pytest.mark.parametrize(
        "payload",
        [
            {"id": 1, "name": "Rex"},
            {"id": "x"},
            {"name": "no id"},
        ],
    )
    def test_manual_and_forced_classify_identically(self, payload):
        response = make_response(200, payload)
        manual = build_validated_response(200, payload, response, SCHEMAS, ManualValidationConfig())
        forced = build_validated_response(200, payload, response, SCHEMAS, ForcedValidationConfig())

        assert isinstance(manual, ApiResponseWithParse)
        result = manual.parse()
        if isinstance(result, Parsed):
            assert isinstance(forced, ApiResponseWithForcedParse)
            assert forced.parsed.data == result.parsed
            assert forced.parsed.content_type == result.content_type
        else:
            assert isinstance(forced, ApiResponseError)
            assert forced.kind == result.kind
            assert forced.status == 200
            assert forced.data == payload

    def test_forced_shape_has_no_parse(self):
        payload = {"id": 1, "name": "Rex"}
        forced = build_validated_response(200, payload, make_response(200, payload), SCHEMAS, ForcedValidationConfig())
        assert forced.is_valid is True
        assert not hasattr(forced, "parse")

    def test_manual_shape_has_no_parsed(self):
        payload = {"id": 1, "name": "Rex"}
        manual = build_validated_response(200, payload, make_response(200, payload), SCHEMAS, ManualValidationConfig())
        assert manual.is_valid is True
        assert not hasattr(manual, "parsed")

    def test_manual_parse_repeatable(self):
        payload = {"id": 1, "name": "Rex"}
        manual = build_validated_response(200, payload, make_response(200, payload), SCHEMAS, global_config)
        assert manual.parse() == manual.parse()

    def test_runtime_content_type_selects_schema(self):
        response = make_response(200, "plain words", "text/plain; charset=utf-8")
        manual = build_validated_response(200, "plain words", response, SCHEMAS, global_config)
        assert manual.parse().kind == "missing-schema"

    def test_mode_read_from_config(self):
        payload = {"id": 1, "name": "Rex"}
        response = make_response(200, payload)
        assert isinstance(build_validated_response(200, payload, response, SCHEMAS, GlobalConfig(force_validation=True)), ApiResponseWithForcedParse)
        assert isinstance(build_validated_response(200, payload, response, SCHEMAS, GlobalConfig()), ApiResponseWithParse)


class TestIsParsed:
    def test_narrowing(self):
        assert is_parsed(Parsed(content_type="application/json", parsed=1))
        assert not is_parsed(ParseFailure(kind="parse-error", error="x"))
        payload = {"id": 1, "name": "Rex"}
        forced = build_validated_response(200, payload, make_response(200, payload), SCHEMAS, ForcedValidationConfig())
        assert is_parsed(forced)
        assert not is_parsed(ApiResponseError(kind="unexpected-error", error="x"))


class TestConfigureOperations:
    def test_binds_config_and_skips_non_callables(self):
        seen = []

        def get_pet(params=None, config=None):
            seen.append(config)
            return params

        config = ForcedValidationConfig(base_url="https://api.example.com")
        bound = configure_operations({"get_pet": get_pet, "version": "1.0"}, config)

        assert isinstance(bound, BoundOperations)
        assert list(bound) == ["get_pet"]
        assert bound.get_pet({"petId": 1}) == {"petId": 1}
        assert seen[-1] is config

    def test_explicit_config_replaces_bound(self):
        seen = []

        def get_pet(params=None, config=None):
            seen.append(config)

        bound = configure_operations({"get_pet": get_pet}, ForcedValidationConfig(headers={"A": "1"}))
        override = ManualValidationConfig(base_url="https://other")
        bound["get_pet"](None, override)
        assert seen[-1] is override
        assert seen[-1].headers == {}

    def test_unknown_attribute(self):
        bound = configure_operations({}, global_config)
        with pytest.raises(AttributeError):
            bound.missing

    def test_bound_keeps_metadata(self):
        def list_pets(params=None, config=None):
            """List all pets."""

        bound = configure_operations({"list_pets": list_pets}, global_config)
        assert bound.list_pets.__name__ == "list_pets"
        assert bound.list_pets.__doc__ == "List all pets."


class TestGlobalConfig:
    def test_defaults_to_manual(self):
        assert global_config.force_validation is False

    def test_frozen(self):
        with pytest.raises(Exception):
            global_config.base_url = "changed"

    def test_forced_config_is_literal_true(self):
        with pytest.raises(Exception):
            ForcedValidationConfig(force_validation=False)


class TestBodies:
    def test_content_type_lowercased_without_parameters(self):
        assert get_response_content_type(make_response(200, {}, "Application/JSON; charset=utf-8")) == "application/json"
        assert get_response_content_type(make_response(200, {}, None)) == ""

    def test_parse_response_body_by_header(self):
        assert parse_response_body(make_response(200, {"a": 1})) == {"a": 1}
        assert parse_response_body(make_response(200, "hi", "text/plain")) == "hi"
        assert parse_response_body(make_response(200, b"\x00\x01", "application/octet-stream")) == b"\x00\x01"
        assert parse_response_body(make_response(204, None)) is None

    def test_invalid_json_is_none(self):
        assert parse_response_body(make_response(200, "{not json")) is None

    def test_encode_json_model(self):
        kwargs = encode_request_body(Pet(id=1, name="Rex"), "application/json")
        assert json.loads(kwargs["data"]) == {"id": 1, "name": "Rex"}

    def test_encode_form(self):
        kwargs = encode_request_body({"name": "Rex", "tag": None}, "application/x-www-form-urlencoded")
        assert kwargs == {"data": {"name": "Rex"}}

    def test_encode_multipart(self):
        kwargs = encode_request_body({"file": b"123", "note": "hi"}, "multipart/form-data")
        assert kwargs == {"files": {"file": b"123"}, "data": {"note": "hi"}}

    def test_encode_bytes_passthrough(self):
        assert encode_request_body(b"raw", "application/octet-stream") == {"data": b"raw"}

    def test_build_path_quotes_values(self):
        assert build_path("/pets/{petId}/photos/{name}", {"petId": 7, "name": "a b/c"}) == "/pets/7/photos/a%20b%2Fc"


class TestSendRequest:
    def test_uses_session_and_merges_headers(self):
        session = MagicMock()
        config = GlobalConfig(base_url="https://api.example.com/", headers={"Authorization": "Bearer t"}, session=session)

        send_request(
            config,
            "POST",
            "/pets",
            query={"limit": 10, "tags": ["a", "b"], "skip": None, "flag": True},
            headers={"X-Trace": "1"},
            body={"name": "Rex"},
            content_type="application/json",
            accept="application/json",
        )

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://api.example.com/pets")
        assert kwargs["params"] == {"limit": 10, "tags": ["a", "b"], "flag": "true"}
        assert kwargs["headers"] == {
            "Authorization": "Bearer t",
            "X-Trace": "1",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        assert json.loads(kwargs["data"]) == {"name": "Rex"}
        assert kwargs["timeout"] == 30.0

    def test_list_headers_comma_joined(self):
        session = MagicMock()
        send_request(
            GlobalConfig(session=session),
            "GET",
            "/pets",
            headers={"X-Tags": ["a", "b"], "X-Flags": (True, False), "X-Id": 7},
        )
        headers = session.request.call_args.kwargs["headers"]
        assert headers["X-Tags"] == "a,b"
        assert headers["X-Flags"] == "true,false"
        assert headers["X-Id"] == "7"

    def test_transport_errors_propagate(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(requests.ConnectionError):
            send_request(GlobalConfig(session=session), "GET", "/pets")


class TestUnexpectedResponse:
    def test_carries_status_and_data(self):
        response = make_response(418, {"teapot": True})
        error = unexpected_response(response)
        assert error.is_valid is False
        assert error.kind == "unexpected-response"
        assert error.status == 418
        assert error.data == {"teapot": True}
        assert error.response is response
