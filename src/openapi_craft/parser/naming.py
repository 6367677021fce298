"""Identifier sanitizing and schema type name resolution.

Every name that ends up in generated source goes through this module so
that loose and strict flavors, inline schemas and component schemas all
resolve the same way for client and server emission.
"""

import keyword
import re
from types import MappingProxyType
from typing import Any, Mapping

from openapi_craft.errors import UnresolvedReferenceError

SCHEMA_REF_PREFIX = "#/components/schemas/"
STRICT_SUFFIX = "Strict"

# Names exported by the emitted support module (config.py).
SUPPORT_MODULE_NAMES = frozenset({
    "ApiResponse",
    "ApiResponseError",
    "ApiResponseWithForcedParse",
    "ApiResponseWithParse",
    "BoundOperations",
    "Deserializer",
    "DeserializerMap",
    "ForcedParsed",
    "ForcedValidationConfig",
    "GlobalConfig",
    "ManualValidationConfig",
    "ParseFailure",
    "ParseResult",
    "Parsed",
})

# Names imported into generated schema and operation modules.
EMITTED_IMPORT_NAMES = frozenset({
    "Any",
    "BaseModel",
    "ConfigDict",
    "Decimal",
    "Field",
    "Literal",
    "Optional",
    "RootModel",
    "TYPE_CHECKING",
    "TypedDict",
    "UUID",
    "Union",
    "date",
    "datetime",
    "overload",
    "requests",
})

PYTHON_BUILTIN_NAMES = frozenset({
    "Ellipsis",
    "Exception",
    "NotImplemented",
    "Warning",
    "bool",
    "bytes",
    "dict",
    "float",
    "int",
    "list",
    "object",
    "str",
    "type",
})

# Module-level names an operation function must not shadow.
RESERVED_FUNCTION_NAMES = frozenset({
    "build_path",
    "build_validated_response",
    "configure_operations",
    "global_config",
    "is_parsed",
    "operations",
    "parse_json_body",
    "parse_response_body",
    "requests",
    "send_request",
    "unexpected_response",
})

RESERVED_NAMES = frozenset(
    SUPPORT_MODULE_NAMES | EMITTED_IMPORT_NAMES | PYTHON_BUILTIN_NAMES | set(keyword.kwlist)
)


def sanitize_identifier(name: str) -> str:
    """Turn an arbitrary schema or operation name into a Python identifier.

    Non-alphanumeric runs are dropped and the following chunk is
    capitalized ("pet-store" -> "petStore"). A leading digit gets a "_"
    prefix. Alphanumeric names come back unchanged.
    """
    chunks = [chunk for chunk in re.split(r"[^0-9A-Za-z]+", name) if chunk]
    if not chunks:
        return "_"
    result = chunks[0] + "".join(chunk[0].upper() + chunk[1:] for chunk in chunks[1:])
    if result[0].isdigit():
        result = f"_{result}"
    return result


def capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def to_snake_case(name: str) -> str:
    """getPetById -> get_pet_by_id; keywords get a trailing underscore."""
    identifier = sanitize_identifier(name)
    identifier = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", identifier)
    identifier = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", identifier).lower()
    if keyword.iskeyword(identifier):
        identifier += "_"
    return identifier


def assign_function_names(operation_ids: list[str]) -> dict[str, str]:
    """operationId -> unique snake_case function (and module) name."""
    assigned: dict[str, str] = {}
    taken: set[str] = set()
    for operation_id in operation_ids:
        base = to_snake_case(operation_id)
        if base in RESERVED_FUNCTION_NAMES:
            base += "_"
        name, counter = base, 2
        while name in taken:
            name = f"{base}{counter}"
            counter += 1
        taken.add(name)
        assigned[operation_id] = name
    return assigned


def operation_type_base(operation_id: str) -> str:
    return capitalize(sanitize_identifier(operation_id))


def assign_type_bases(operation_ids: list[str]) -> dict[str, str]:
    """operationId -> unique prefix of the type names generated for it.

    getPet and GetPet both sanitize to GetPet; the second one gets GetPet2.
    """
    assigned: dict[str, str] = {}
    taken: set[str] = set()
    for operation_id in operation_ids:
        if operation_id in assigned:
            continue
        base = operation_type_base(operation_id)
        name, counter = base, 2
        while name in taken:
            name = f"{base}{counter}"
            counter += 1
        taken.add(name)
        assigned[operation_id] = name
    return assigned


def inline_type_name(type_base: str, suffix: str) -> str:
    return f"{operation_type_base(type_base)}{suffix}"


def request_type_suffix(position: int) -> str:
    return "Request" if position == 0 else f"Request{position + 1}"


def response_type_suffix(status_code: str, position: int) -> str:
    base = "DefaultResponse" if status_code == "default" else f"{status_code}Response"
    return base if position == 0 else f"{base}{position + 1}"


def operation_type_names(type_base: str) -> set[str]:
    """Names declared inside a generated operation module."""
    base = operation_type_base(type_base)
    return {
        f"{base}Params",
        f"{base}RequestMap",
        f"{base}ResponseMap",
        f"{base}Response",
        f"{base}ForcedResponse",
        f"{base}StrictRequestMap",
        f"{base}StrictResponseMap",
        f"{base}StrictResponse",
    }


def unescape_pointer(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


class NameRegistry:
    """Final identifiers for one generation run.

    Built once by ``prepare_document`` after collision repair; read-only
    afterwards, so per-operation workers can share it.
    """

    def __init__(
        self,
        schemas: Mapping[str, Any],
        renames: Mapping[str, str] | None = None,
        reserved: frozenset[str] = RESERVED_NAMES,
        type_bases: Mapping[str, str] | None = None,
    ):
        self._schemas = MappingProxyType(dict(schemas))
        self._identifiers = MappingProxyType({name: sanitize_identifier(name) for name in schemas})
        self.renames = MappingProxyType(dict(renames or {}))
        self.reserved = reserved
        self.type_bases = MappingProxyType(dict(type_bases or {}))

    def type_base(self, operation_id: str) -> str:
        """Unique prefix for the types of one operation (see assign_type_bases)."""
        return self.type_bases.get(operation_id) or operation_type_base(operation_id)

    @property
    def identifiers(self) -> Mapping[str, str]:
        return self._identifiers

    def schema_names(self) -> list[str]:
        return list(self._schemas)

    def schema(self, name: str) -> Any:
        return self._schemas[name]

    def schema_name_for_ref(self, ref: str) -> str:
        if not ref.startswith(SCHEMA_REF_PREFIX):
            raise UnresolvedReferenceError(ref, "unsupported schema reference")
        name = unescape_pointer(ref[len(SCHEMA_REF_PREFIX):])
        if not name or name not in self._schemas:
            raise UnresolvedReferenceError(ref)
        return name

    def identifier_for_ref(self, ref: str) -> str:
        return self._identifiers[self.schema_name_for_ref(ref)]

    def resolve_type_name(
        self,
        schema: Any,
        operation_id: str,
        suffix: str,
        type_imports: set[str],
    ) -> str:
        """Resolve a schema to the identifier emitted for it and record the import.

        References reuse their component identifier; inline schemas get
        ``<OperationId><suffix>``.
        """
        if isinstance(schema, dict) and "$ref" in schema:
            type_name = self.identifier_for_ref(schema["$ref"])
        else:
            type_name = inline_type_name(self.type_base(operation_id), suffix)
        type_imports.add(type_name)
        return type_name

    def resolve_strict_type_name(
        self,
        schema: Any,
        operation_id: str,
        suffix: str,
        type_imports: set[str],
    ) -> str:
        """Same as resolve_type_name, for the strict (server) flavor."""
        if isinstance(schema, dict) and "$ref" in schema:
            type_name = f"{self.identifier_for_ref(schema['$ref'])}{STRICT_SUFFIX}"
        else:
            type_name = f"{inline_type_name(self.type_base(operation_id), suffix)}{STRICT_SUFFIX}"
        type_imports.add(type_name)
        return type_name
