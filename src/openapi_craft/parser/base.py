"""Data models shared by the document analyzers.

The loader and analyzers convert raw OpenAPI mappings into these models
for downstream emission.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class ContentTypeMapping(BaseModel):
    """A content type and the schema attached to it (if any)."""

    model_config = ConfigDict(frozen=True)

    content_type: str
    schema_object: dict[str, Any] | None = None


class RequestContentTypes(BaseModel):
    """Content types accepted by a request body, in declaration order."""

    model_config = ConfigDict(frozen=True)

    is_required: bool
    content_types: list[ContentTypeMapping]

    @property
    def default_content_type(self) -> str | None:
        return self.content_types[0].content_type if self.content_types else None


class ResponseContentTypes(BaseModel):
    """Content types offered for one status code, in declaration order."""

    model_config = ConfigDict(frozen=True)

    status_code: str
    content_types: list[ContentTypeMapping]


class Param(BaseModel):
    """A single API parameter (query, path, or header)."""

    name: str
    location: str  # query / path / header
    required: bool
    schema_object: dict[str, Any] = {}
    description: str = ""


class ParameterGroups(BaseModel):
    """Operation parameters split by location."""

    path_params: list[Param] = []
    query_params: list[Param] = []
    header_params: list[Param] = []


class OperationRef(BaseModel):
    """An operation located in the document."""

    path: str
    method: str  # lower case: get / post / put / delete / patch
    operation: dict[str, Any]
    path_parameters: list[dict[str, Any]] = []

    @property
    def operation_id(self) -> str | None:
        return self.operation.get("operationId")


class GeneratedFile(BaseModel):
    """One emitted artifact: a path relative to the output root and its source."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: str
