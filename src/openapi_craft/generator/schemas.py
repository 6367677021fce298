"""Pydantic model emission for component and inline schemas.

Every schema becomes one module under ``schemas/``. Object schemas render
as ``BaseModel`` subclasses, everything else as a ``RootModel`` with a
``root`` annotation. Modules use postponed annotations and only import
their dependencies under ``TYPE_CHECKING``; ``schemas/__init__.py``
imports every class and rebuilds them all, which resolves cyclic
references.
"""

import json
import keyword
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from openapi_craft.parser.base import GeneratedFile
from openapi_craft.parser.naming import (
    EMITTED_IMPORT_NAMES,
    PYTHON_BUILTIN_NAMES,
    STRICT_SUFFIX,
    NameRegistry,
    capitalize,
    sanitize_identifier,
)

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = {
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}

# (python name, module it is imported from)
_STRING_FORMATS = {
    "date-time": ("datetime", "datetime"),
    "date": ("date", "datetime"),
    "uuid": ("UUID", "uuid"),
    "decimal": ("Decimal", "decimal"),
    "binary": ("bytes", None),
}

_TYPING_NAMES = ("Any", "Literal", "Union")

BASEMODEL_ATTRIBUTES = frozenset(name for name in dir(BaseModel) if not name.startswith("_"))


class RenderedSchema(BaseModel):
    """One emitted schema module and the classes it defines."""

    model_config = ConfigDict(frozen=True)

    module_name: str
    class_names: list[str]
    content: str

    def to_file(self) -> GeneratedFile:
        return GeneratedFile(name=f"schemas/{self.module_name}.py", content=self.content)


def python_literal(value: Any) -> str | None:
    """Python source for a Literal[] member; None for values Literal cannot hold."""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    return None


def render_union(members: list[str]) -> str:
    unique = list(dict.fromkeys(members))
    if "Any" in unique:
        return "Any"
    if len(unique) == 1:
        return unique[0]
    return f"Union[{', '.join(unique)}]"


def make_optional(expr: str) -> str:
    if expr in ("Any", "None") or expr.endswith("| None"):
        return expr
    return f"{expr} | None"


class TypeTranslator:
    """Translates schema objects to Python type expressions.

    Records what a module needs: referenced schema identifiers (``refs``),
    typing/stdlib names (``names``) and auxiliary classes for nested
    inline objects (``aux``). Without an owner class nested inline
    objects degrade to ``dict[str, Any]``.
    """

    def __init__(self, registry: NameRegistry, strict: bool = False):
        self.registry = registry
        self.strict = strict
        self.refs: list[str] = []
        self.names: set[str] = set()
        self.aux: list[tuple[str, dict]] = []
        self._aux_names: set[str] = set()

    def reference(self, ref: str) -> str:
        identifier = self.registry.identifier_for_ref(ref)
        if self.strict:
            identifier += STRICT_SUFFIX
        if identifier not in self.refs:
            self.refs.append(identifier)
        return identifier

    def any(self) -> str:
        self.names.add("Any")
        return "Any"

    def translate(self, schema: Any, aux_name: str | None = None) -> str:
        if not isinstance(schema, dict):
            return self.any()
        if "$ref" in schema:
            return self.reference(schema["$ref"])

        nullable = bool(schema.get("nullable"))
        types = schema.get("type")
        if isinstance(types, list):
            nullable = nullable or "null" in types
            types = [t for t in types if t != "null"]
            if len(types) == 1:
                types = types[0]
            elif not types:
                types = "null"
        enum = schema.get("enum")
        if isinstance(enum, list) and None in enum:
            nullable = True

        expr = self._translate_non_null(schema, types, aux_name)
        return make_optional(expr) if nullable else expr

    def _translate_non_null(self, schema: dict, types: Any, aux_name: str | None) -> str:
        extensible = schema.get("x-extensible-enum")
        if isinstance(extensible, list) and extensible:
            literal = self._literal(extensible)
            return f"Union[{literal}, str]" if literal != "Any" else "str"
        if isinstance(schema.get("enum"), list):
            return self._literal([v for v in schema["enum"] if v is not None])
        if "const" in schema:
            return self._literal([schema["const"]])

        for keyword_ in ("oneOf", "anyOf"):
            options = schema.get(keyword_)
            if isinstance(options, list) and options:
                members = [
                    self.translate(option, f"{aux_name}Option{i}" if aux_name else None)
                    for i, option in enumerate(options, start=1)
                ]
                if "Union" in render_union(members):
                    self.names.add("Union")
                return render_union(members)

        all_of = schema.get("allOf")
        if isinstance(all_of, list) and all_of:
            if len(all_of) == 1 and not schema.get("properties"):
                return self.translate(all_of[0], aux_name)
            return self._object(schema, aux_name)

        if isinstance(types, list):
            members = [self._translate_non_null(schema, t, aux_name) for t in types]
            if "Union" in render_union(members):
                self.names.add("Union")
            return render_union(members)

        if types == "string":
            python_name, module = _STRING_FORMATS.get(schema.get("format"), ("str", None))
            if module:
                self.names.add(python_name)
            return python_name
        if types in _PRIMITIVE_TYPES:
            return _PRIMITIVE_TYPES[types]
        if types == "array" or (types is None and "items" in schema):
            item = self.translate(schema.get("items"), f"{aux_name}Item" if aux_name else None)
            return f"list[{item}]"
        if types == "object" or "properties" in schema or "additionalProperties" in schema:
            return self._object(schema, aux_name)
        return self.any()

    def _literal(self, values: list) -> str:
        rendered = [python_literal(v) for v in values]
        if not rendered or any(r is None for r in rendered):
            return self.any()
        self.names.add("Literal")
        return f"Literal[{', '.join(dict.fromkeys(rendered))}]"

    def _object(self, schema: dict, aux_name: str | None) -> str:
        if schema.get("properties") or schema.get("allOf"):
            if aux_name is None:
                return f"dict[str, {self.any()}]"
            return self._register_aux(aux_name, schema)
        additional = schema.get("additionalProperties")
        if isinstance(additional, dict) and additional:
            value = self.translate(additional, f"{aux_name}Value" if aux_name else None)
            return f"dict[str, {value}]"
        return f"dict[str, {self.any()}]"

    def _register_aux(self, name: str, schema: dict) -> str:
        candidate, counter = name, 2
        while candidate in self._aux_names:
            candidate = f"{name}{counter}"
            counter += 1
        self._aux_names.add(candidate)
        self.aux.append((candidate, schema))
        return candidate


def collect_object_fields(schema: dict, registry: NameRegistry) -> tuple[dict[str, Any], set[str], Any]:
    """Properties, required names and additionalProperties of an object, flattening allOf.

    allOf members that are references are followed once each, so cycles
    through allOf terminate.
    """
    properties: dict[str, Any] = {}
    required: set[str] = set()
    additional: Any = None
    visited: set[str] = set()

    def visit(node: Any) -> None:
        nonlocal additional
        if not isinstance(node, dict):
            return
        if "$ref" in node:
            name = registry.schema_name_for_ref(node["$ref"])
            if name in visited:
                return
            visited.add(name)
            visit(registry.schema(name))
            return
        for member in node.get("allOf") or []:
            visit(member)
        properties.update(node.get("properties") or {})
        required.update(r for r in node.get("required") or [] if isinstance(r, str))
        if "additionalProperties" in node:
            additional = node["additionalProperties"]

    visit(schema)
    return properties, required, additional


def is_object_schema(schema: Any) -> bool:
    if not isinstance(schema, dict) or "$ref" in schema:
        return False
    if any(k in schema for k in ("oneOf", "anyOf", "enum", "const", "x-extensible-enum")):
        return False
    if schema.get("allOf"):
        return True
    return bool(schema.get("properties"))


class ModelRenderer:
    """Renders one schema module (main class plus auxiliary classes)."""

    def __init__(self, registry: NameRegistry, strict: bool = False, forbid_extra: bool = False):
        self.registry = registry
        self.strict = strict
        self.forbid_extra = forbid_extra or strict
        self.translator = TypeTranslator(registry, strict)
        self.pydantic_names: set[str] = set()
        identifiers = set(registry.identifiers.values())
        self.shadowed = (
            BASEMODEL_ATTRIBUTES
            | EMITTED_IMPORT_NAMES
            | PYTHON_BUILTIN_NAMES
            | identifiers
            | {f"{i}{STRICT_SUFFIX}" for i in identifiers}
        )

    def render(self, class_name: str, schema: Any) -> RenderedSchema:
        blocks = [self._render_class(class_name, schema)]
        # Rendering an auxiliary class can register further ones.
        rendered = 0
        while rendered < len(self.translator.aux):
            aux_name, aux_schema = self.translator.aux[rendered]
            blocks.append(self._render_model(aux_name, aux_schema))
            rendered += 1

        class_names = [class_name] + [name for name, _ in self.translator.aux]
        # Auxiliary classes first, deepest last registered first.
        body = "\n\n\n".join([*reversed(blocks[1:]), blocks[0]])
        content = self._render_header(class_name, schema, class_names) + body + "\n"
        return RenderedSchema(module_name=class_name, class_names=class_names, content=content)

    def _render_header(self, class_name: str, schema: Any, class_names: list[str]) -> str:
        title = schema.get("title") if isinstance(schema, dict) else None
        lines = [f'"""{_docstring_text(title) if isinstance(title, str) else class_name} schema."""', ""]
        lines.append("from __future__ import annotations")
        lines.append("")

        names = self.translator.names
        stdlib = []
        datetime_names = sorted(n for n in names if n in ("date", "datetime"))
        if "Decimal" in names:
            stdlib.append("from decimal import Decimal")
        if datetime_names:
            stdlib.append(f"from datetime import {', '.join(datetime_names)}")
        external_refs = [ref for ref in self.translator.refs if ref not in class_names]
        typing_names = sorted(n for n in names if n in _TYPING_NAMES)
        if external_refs:
            typing_names = sorted(["TYPE_CHECKING", *typing_names])
        if typing_names:
            stdlib.append(f"from typing import {', '.join(typing_names)}")
        if "UUID" in names:
            stdlib.append("from uuid import UUID")
        stdlib.sort(key=lambda line: line.split()[1])

        if stdlib:
            lines.extend(stdlib)
            lines.append("")
        lines.append(f"from pydantic import {', '.join(sorted(self.pydantic_names))}")
        if external_refs:
            lines.append("")
            lines.append("if TYPE_CHECKING:")
            lines.extend(f"    from .{ref} import {ref}" for ref in sorted(external_refs))
        lines.extend(["", "", ""])
        return "\n".join(lines)

    def _render_class(self, class_name: str, schema: Any) -> str:
        if is_object_schema(schema):
            return self._render_model(class_name, schema)
        return self._render_root_model(class_name, schema)

    def _render_root_model(self, class_name: str, schema: Any) -> str:
        self.pydantic_names.add("RootModel")
        root = self.translator.translate(schema, f"{class_name}_")
        lines = [f"class {class_name}(RootModel):"]
        lines.extend(_docstring_lines(schema))
        lines.append(f"    root: {root}")
        return "\n".join(lines)

    def _render_model(self, class_name: str, schema: dict) -> str:
        self.pydantic_names.update({"BaseModel", "ConfigDict"})
        properties, required, additional = collect_object_fields(schema, self.registry)

        extra = "forbid" if self.forbid_extra else "allow"
        if additional is True or (isinstance(additional, dict) and additional):
            extra = "allow"
        elif additional is False:
            extra = "forbid"

        lines = [f"class {class_name}(BaseModel):"]
        lines.extend(_docstring_lines(schema))
        lines.append(f'    model_config = ConfigDict(extra="{extra}", populate_by_name=True)')

        taken: set[str] = set()
        field_lines = []
        for prop_name, prop_schema in properties.items():
            field_name = self._field_name(str(prop_name), taken)
            taken.add(field_name)
            annotation = self.translator.translate(
                prop_schema, f"{class_name}_{capitalize(sanitize_identifier(str(prop_name)))}"
            )
            field_lines.append(
                self._render_field(field_name, str(prop_name), annotation, prop_schema, prop_name in required)
            )
        if field_lines:
            lines.append("")
            lines.extend(field_lines)
        return "\n".join(lines)

    def _field_name(self, prop_name: str, taken: set[str]) -> str:
        name = sanitize_identifier(prop_name)
        if name.startswith("_"):
            name = f"field{name}"
        if keyword.iskeyword(name) or name in self.shadowed:
            name += "_"
        while name in taken:
            name += "_"
        return name

    def _render_field(self, field_name: str, prop_name: str, annotation: str, schema: Any, required: bool) -> str:
        keywords = []
        if not required:
            annotation = make_optional(annotation)
            default = schema.get("default") if isinstance(schema, dict) else None
            keywords.append(f"default={python_literal(default) or 'None'}")
        if field_name != prop_name:
            keywords.append(f"alias={json.dumps(prop_name)}")
        description = schema.get("description") if isinstance(schema, dict) else None
        if isinstance(description, str) and description.strip():
            keywords.append(f"description={json.dumps(description.strip())}")

        if not keywords:
            return f"    {field_name}: {annotation}"
        if keywords == ["default=None"]:
            return f"    {field_name}: {annotation} = None"
        self.pydantic_names.add("Field")
        return f"    {field_name}: {annotation} = Field({', '.join(keywords)})"


def _docstring_text(text: str) -> str:
    return " ".join(text.split()).replace("\\", "\\\\").replace('"', '\\"')


def _docstring_lines(schema: Any) -> list[str]:
    description = schema.get("description") if isinstance(schema, dict) else None
    if not isinstance(description, str) or not description.strip():
        return []
    return [f'    """{_docstring_text(description)}"""', ""]


def render_schema_module(
    class_name: str,
    schema: Any,
    registry: NameRegistry,
    strict: bool = False,
    forbid_extra: bool = False,
) -> RenderedSchema:
    """Emit the module for one component or inline schema."""
    rendered = ModelRenderer(registry, strict=strict, forbid_extra=forbid_extra).render(class_name, schema)
    logger.debug("rendered schema module %s (%d classes)", class_name, len(rendered.class_names))
    return rendered


def render_schemas_init(modules: list[RenderedSchema]) -> GeneratedFile:
    """schemas/__init__.py: import every class, then rebuild them all."""
    ordered = sorted(modules, key=lambda m: m.module_name)
    lines = ['"""Generated pydantic models."""', ""]
    for module in ordered:
        lines.append(f"from .{module.module_name} import {', '.join(sorted(module.class_names))}")
    class_names = sorted(name for module in ordered for name in module.class_names)

    lines.append("")
    lines.append("__all__ = [")
    lines.extend(f"    {json.dumps(name)}," for name in class_names)
    lines.append("]")
    if class_names:
        lines.append("")
        # Every model is in this namespace now, so forward references resolve.
        lines.extend(f"{name}.model_rebuild()" for name in class_names)
    return GeneratedFile(name="schemas/__init__.py", content="\n".join(lines) + "\n")
