"""Runtime support for generated operations.

This module is copied verbatim into every generated package as
``config.py``. It only depends on the standard library, pydantic and
requests.

Every operation returns either a success object (``is_valid`` is True)
or an ``ApiResponseError``. Success objects for responses with a schema
come in two interchangeable shapes:

* manual validation: ``ApiResponseWithParse`` exposes ``parse()``;
* forced validation: ``ApiResponseWithForcedParse`` carries ``parsed``.

Both run the same routine (``parse_api_response_unknown_data``) and
classify a payload identically; only timing and shape differ.
"""

import functools
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Literal, TypeGuard, TypeVar, Union, overload

import requests
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

S = TypeVar("S")
T = TypeVar("T")
F = TypeVar("F", bound=bool)

Deserializer = Callable[..., Any]  # (data, content_type) -> transformed data
DeserializerMap = Mapping[str, Deserializer]
SchemaMap = Mapping[str, Any]  # content type -> pydantic model or type

ErrorKind = Literal[
    "unexpected-error",
    "unexpected-response",
    "parse-error",
    "deserialization-error",
    "missing-schema",
]
ParseErrorKind = Literal["parse-error", "deserialization-error", "missing-schema"]


# -- configuration ------------------------------------------------------------


class GlobalConfig(BaseModel):
    """Per-call configuration of generated operations."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    base_url: str = ""
    headers: dict[str, str] = {}
    # Anything with requests.Session.request's signature; None uses requests.request.
    session: Any = None
    timeout: float | None = 30.0
    deserializers: dict[str, Deserializer] = {}
    force_validation: bool = False


class ForcedValidationConfig(GlobalConfig):
    force_validation: Literal[True] = True


class ManualValidationConfig(GlobalConfig):
    force_validation: Literal[False] = False


global_config = GlobalConfig()


# -- parse results ------------------------------------------------------------


@dataclass(frozen=True)
class Parsed(Generic[T]):
    content_type: str
    parsed: T
    kind: ClassVar[Literal["parsed"]] = "parsed"


@dataclass(frozen=True)
class ParseFailure:
    kind: ParseErrorKind
    error: Any


ParseResult = Union[Parsed[T], ParseFailure]


@dataclass(frozen=True)
class ForcedParsed(Generic[T]):
    """Eagerly validated payload; keeps the content type for discrimination."""

    data: T
    content_type: str


# -- responses ----------------------------------------------------------------


@dataclass(frozen=True)
class ApiResponse(Generic[S, T]):
    status: S
    data: T
    response: Any
    is_valid: ClassVar[Literal[True]] = True


@dataclass(frozen=True)
class ApiResponseWithParse(Generic[S, T]):
    status: S
    data: Any
    response: Any
    parse: Callable[[], "ParseResult[T]"]
    is_valid: ClassVar[Literal[True]] = True


@dataclass(frozen=True)
class ApiResponseWithForcedParse(Generic[S, T]):
    status: S
    data: Any
    response: Any
    parsed: ForcedParsed[T]
    is_valid: ClassVar[Literal[True]] = True


@dataclass(frozen=True)
class ApiResponseError:
    kind: ErrorKind
    error: Any
    status: int | str | None = None
    data: Any = None
    response: Any = None
    is_valid: ClassVar[Literal[False]] = False


def is_parsed(value: Any) -> TypeGuard[Union[Parsed[Any], ApiResponseWithForcedParse[Any, Any]]]:
    """True when ``value`` carries a validated payload."""
    return isinstance(value, (Parsed, ApiResponseWithForcedParse))


# -- content types and bodies ---------------------------------------------------


def is_json_like(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.endswith("/json") or media_type.endswith("+json")


def get_response_content_type(response: Any) -> str:
    raw = response.headers.get("content-type") if response is not None else None
    return raw.split(";", 1)[0].strip().lower() if raw else ""


def parse_json_body(response: Any) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def parse_response_body(response: Any) -> Any:
    """Decode a body by its runtime Content-Type header."""
    if not response.content:
        return None
    content_type = get_response_content_type(response)
    if is_json_like(content_type):
        return parse_json_body(response)
    if (
        content_type.startswith("text/")
        or content_type in ("application/xml", "application/xhtml+xml", "application/x-www-form-urlencoded")
        or content_type.endswith("+xml")
    ):
        return response.text
    return response.content


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return value


def encode_request_body(body: Any, content_type: str) -> dict[str, Any]:
    """Keyword arguments for requests carrying ``body`` as ``content_type``."""
    if body is None:
        return {}
    if isinstance(body, (bytes, bytearray)):
        return {"data": bytes(body)}
    if content_type == "multipart/form-data" and isinstance(body, BaseModel):
        # Python mode keeps binary fields as bytes.
        payload = body.model_dump(by_alias=True, exclude_none=True)
    else:
        payload = _plain(body)
    if is_json_like(content_type):
        return {"data": json.dumps(payload)}
    if content_type == "multipart/form-data" and isinstance(payload, Mapping):
        files, fields = {}, {}
        for key, value in payload.items():
            if value is None:
                continue
            if isinstance(value, (bytes, bytearray)) or hasattr(value, "read"):
                files[key] = value
            elif isinstance(value, str):
                fields[key] = value
            else:
                fields[key] = json.dumps(value)
        return {"files": files, "data": fields} if files else {"files": {k: (None, v) for k, v in fields.items()}}
    if content_type == "application/x-www-form-urlencoded" and isinstance(payload, Mapping):
        # requests repeats the key for list values (key=a&key=b).
        return {"data": {k: v for k, v in payload.items() if v is not None}}
    if isinstance(payload, str):
        return {"data": payload}
    return {"data": json.dumps(payload)}


def build_path(template: str, path_params: Mapping[str, Any]) -> str:
    path = template
    for name, value in path_params.items():
        path = path.replace("{" + name + "}", requests.utils.quote(str(value), safe=""))
    return path


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_query_value(v) for v in value]
    return value


def _header_value(value: Any) -> str:
    value = _query_value(value)
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


def send_request(
    config: GlobalConfig,
    method: str,
    path: str,
    *,
    query: Mapping[str, Any] | None = None,
    headers: Mapping[str, Any] | None = None,
    body: Any = None,
    content_type: str | None = None,
    accept: str | None = None,
) -> Any:
    """Dispatch one request; transport failures propagate as requests exceptions."""
    merged_headers = {**config.headers}
    merged_headers.update({k: _header_value(v) for k, v in (headers or {}).items() if v is not None})
    if accept:
        merged_headers.setdefault("Accept", accept)
    body_kwargs: dict[str, Any] = {}
    if body is not None and content_type:
        body_kwargs = encode_request_body(body, content_type)
        # requests sets the multipart boundary itself.
        if content_type != "multipart/form-data":
            merged_headers["Content-Type"] = content_type

    params = {k: _query_value(v) for k, v in (query or {}).items() if v is not None}
    request = config.session.request if config.session is not None else requests.request
    return request(
        method,
        config.base_url.rstrip("/") + path,
        params=params,
        headers=merged_headers,
        timeout=config.timeout,
        **body_kwargs,
    )


# -- validation -----------------------------------------------------------------


def _validate(schema: Any, value: Any) -> Any:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_validate(value)
    return TypeAdapter(schema).validate_python(value)


def parse_payload(
    content_type: str,
    data: Any,
    schema_map: SchemaMap,
    deserializers: DeserializerMap | None = None,
) -> ParseResult[Any]:
    """Deserialize then validate ``data`` for ``content_type``. Never raises."""
    deserialized = data
    deserialization_error = None
    deserializer = (deserializers or {}).get(content_type)
    if deserializer is not None:
        try:
            deserialized = deserializer(data, content_type)
        except Exception as e:  # user-supplied code; classified, not propagated
            deserialization_error = e

    schema = schema_map.get(content_type)
    if schema is None:
        if deserialization_error is not None:
            return ParseFailure(kind="deserialization-error", error=deserialization_error)
        return ParseFailure(kind="missing-schema", error=f"No schema found for content-type: {content_type}")

    if deserialization_error is not None:
        return ParseFailure(kind="deserialization-error", error=deserialization_error)

    try:
        return Parsed(content_type=content_type, parsed=_validate(schema, deserialized))
    except ValidationError as e:
        return ParseFailure(kind="parse-error", error=e)


def parse_api_response_unknown_data(
    response: Any,
    data: Any,
    schema_map: SchemaMap,
    deserializers: DeserializerMap | None = None,
) -> ParseResult[Any]:
    """Validate a response payload against the schema of its runtime content type."""
    return parse_payload(get_response_content_type(response), data, schema_map, deserializers)


def build_validated_response(
    status: Any,
    data: Any,
    response: Any,
    schema_map: SchemaMap,
    config: GlobalConfig,
) -> Any:
    """Build the success object for a status with schemas, in the mode ``config`` selects."""
    deserializers = dict(config.deserializers)

    def parse() -> ParseResult[Any]:
        return parse_api_response_unknown_data(response, data, schema_map, deserializers)

    if not config.force_validation:
        return ApiResponseWithParse(status=status, data=data, response=response, parse=parse)

    result = parse()
    if isinstance(result, Parsed):
        return ApiResponseWithForcedParse(
            status=status,
            data=data,
            response=response,
            parsed=ForcedParsed(data=result.parsed, content_type=result.content_type),
        )
    return ApiResponseError(kind=result.kind, error=result.error, status=status, data=data, response=response)


def unexpected_response(response: Any) -> ApiResponseError:
    status = response.status_code
    return ApiResponseError(
        kind="unexpected-response",
        error=f"Unexpected response status: {status}",
        status=status,
        data=parse_response_body(response),
        response=response,
    )


# -- operation binding ------------------------------------------------------------


class BoundOperations(dict[str, Callable[..., Any]], Generic[F]):
    """Operations bound to one config; items are also reachable as attributes."""

    def __init__(self, operations: Mapping[str, Callable[..., Any]], config: GlobalConfig):
        super().__init__(operations)
        self.config = config

    def __getattr__(self, name: str) -> Callable[..., Any]:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


def _bind(operation: Callable[..., Any], bound_config: GlobalConfig) -> Callable[..., Any]:
    @functools.wraps(operation)
    def bound(params: Any = None, config: GlobalConfig | None = None) -> Any:
        # An explicit config replaces the bound one entirely for this call.
        return operation(params, config if config is not None else bound_config)

    return bound


@overload
def configure_operations(
    operations: Mapping[str, Any], config: ForcedValidationConfig
) -> BoundOperations[Literal[True]]: ...
@overload
def configure_operations(
    operations: Mapping[str, Any], config: ManualValidationConfig
) -> BoundOperations[Literal[False]]: ...
@overload
def configure_operations(operations: Mapping[str, Any], config: GlobalConfig) -> BoundOperations[bool]: ...
def configure_operations(operations: Mapping[str, Any], config: GlobalConfig) -> BoundOperations[Any]:
    """Bind every callable in ``operations`` to ``config``; other values are skipped."""
    bound = {name: _bind(op, config) for name, op in operations.items() if callable(op)}
    return BoundOperations(bound, config)
