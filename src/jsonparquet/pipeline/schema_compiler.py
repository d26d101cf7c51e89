"""
JSON Schema -> Parquet schema compiler.

COMPILATION RULES
=================

    JSON Schema node                       ParquetFieldSpec
    ----------------                       ----------------
    {"$ref": "#/$defs/X"}                  compiled as X, under the field's name
    {"properties": {...}}                  GROUP, one child per property
    {"items": {...}}                       LIST, single child "element"
    {"type": "object",
     "additionalProperties": {...}}        MAP, children "key" (UTF8) and "value"
    {"type": <scalar>, "format": ...}      leaf, see type_mapper.map_type

Repetition: a field is OPTIONAL when its type union contains "null" OR it
is missing from the parent's "required" list, REQUIRED otherwise. List
elements and map values are REQUIRED unless their own type is nullable.

Children keep declaration order, so compiling the same document twice
produces equal trees.

ERROR CONTAINMENT
=================
A field that fails to compile (bad $ref, null-only union, a
malformed keyword such as "type": 5) becomes an OPTIONAL UTF8 placeholder
and the error is collected as a diagnostic; its siblings
compile normally. strict=True re-raises the first error instead.
Cyclic references always raise.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple, Union

from jsonparquet.adapters.json_schema_adapter import parse_schema_document
from jsonparquet.canonical.field_spec import (
    FieldMetadata,
    LogicalAnnotation,
    ParquetFieldSpec,
    PhysicalType,
    Repetition,
    text_placeholder,
)
from jsonparquet.canonical.json_schema import JSONSchemaNode, SchemaDefinitionTable
from jsonparquet.observability.logger import RequestTimer, log_event
from jsonparquet.pipeline.ref_resolver import resolve
from jsonparquet.pipeline.type_mapper import map_type
from jsonparquet.utils.exceptions import (
    CyclicSchemaError,
    SchemaCompileError,
    UnsupportedTypeError,
)


_SHAPELESS = {PhysicalType.LIST: "array", PhysicalType.GROUP: "object"}


class Severity:
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Diagnostic:
    """
    A contained compile problem for a single field.
    """
    path: str
    severity: str
    error: SchemaCompileError

    @property
    def message(self) -> str:
        return str(self.error)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "severity": self.severity,
            "error": type(self.error).__name__,
            "message": self.message,
        }


@dataclass(frozen=True)
class CompilationResult:
    schema: ParquetFieldSpec
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def lossy_fields(self) -> List[str]:
        return [
            d.path for d in self.diagnostics
            if isinstance(d.error, UnsupportedTypeError)
        ]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.diagnostics)


@dataclass
class _CompileContext:
    table: SchemaDefinitionTable
    diagnostics: List[Diagnostic] = field(default_factory=list)


class SchemaCompiler:
    """
    Compiles a JSONSchemaNode tree into a ParquetFieldSpec tree.

    Pure and synchronous: a compiler instance holds only its strictness
    flag, so one instance can be shared across threads.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def compile(
        self,
        schema: JSONSchemaNode,
        table: Optional[SchemaDefinitionTable] = None,
        name: str = "root",
        diagnostics: Optional[List[Diagnostic]] = None,
    ) -> ParquetFieldSpec:
        """
        Compile schema under the given root name.

        Contained problems are appended to diagnostics when a list is
        supplied. The root field is always REQUIRED.
        """
        ctx = _CompileContext(table=table or SchemaDefinitionTable.empty())
        result = self._compile_field(
            schema,
            ctx,
            name=name,
            path=name,
            required=True,
            visited=frozenset(),
        )
        if diagnostics is not None:
            diagnostics.extend(ctx.diagnostics)
        return result

    # ==================================================
    # FIELD DISPATCH
    # ==================================================

    def _compile_field(
        self,
        node: JSONSchemaNode,
        ctx: _CompileContext,
        name: str,
        path: str,
        required: bool,
        visited: FrozenSet[str],
    ) -> ParquetFieldSpec:
        try:
            if node.error is not None:
                raise node.error
            resolved, visited = resolve(node, ctx.table, path, visited)
            if resolved.ref is not None and not resolved.is_typed:
                raise SchemaCompileError(path, f"unsupported $ref syntax {resolved.ref!r}")
            return self._compile_resolved(resolved, ctx, name, path, required, visited)
        except CyclicSchemaError:
            raise
        except SchemaCompileError as exc:
            if self.strict:
                raise
            ctx.diagnostics.append(Diagnostic(path, Severity.ERROR, exc))
            log_event("SCHEMA_FIELD_FAILED", {
                "path": path,
                "error": type(exc).__name__,
                "message": exc.message,
            }, level=logging.ERROR)
            return text_placeholder(name, fallback_from="unresolved", description=node.description)

    def _compile_resolved(
        self,
        node: JSONSchemaNode,
        ctx: _CompileContext,
        name: str,
        path: str,
        required: bool,
        visited: FrozenSet[str],
    ) -> ParquetFieldSpec:
        nullable = "null" in node.type
        repetition = Repetition.OPTIONAL if (nullable or not required) else Repetition.REQUIRED
        metadata = FieldMetadata(description=node.description, enum=node.enum)

        # -----------------------------
        # OBJECT -> GROUP
        # -----------------------------
        if node.properties:
            children = tuple(
                self._compile_field(
                    child,
                    ctx,
                    name=child_name,
                    path=f"{path}.{child_name}",
                    required=child_name in node.required,
                    visited=visited,
                )
                for child_name, child in node.properties
            )
            return ParquetFieldSpec(
                name=name,
                physical_type=PhysicalType.GROUP,
                repetition=repetition,
                children=children,
                metadata=metadata,
            )

        # -----------------------------
        # ARRAY -> LIST
        # -----------------------------
        if node.items is not None:
            element = self._compile_field(
                node.items,
                ctx,
                name="element",
                path=f"{path}.element",
                required=True,
                visited=visited,
            )
            return ParquetFieldSpec(
                name=name,
                physical_type=PhysicalType.LIST,
                repetition=repetition,
                children=(element,),
                metadata=metadata,
            )

        # -----------------------------
        # DICTIONARY -> MAP
        # -----------------------------
        if node.additional_properties is not None:
            key = ParquetFieldSpec(
                name="key",
                physical_type=PhysicalType.BYTE_ARRAY,
                logical_annotation=LogicalAnnotation.UTF8,
                repetition=Repetition.REQUIRED,
            )
            value = self._compile_field(
                node.additional_properties,
                ctx,
                name="value",
                path=f"{path}.value",
                required=True,
                visited=visited,
            )
            return ParquetFieldSpec(
                name=name,
                physical_type=PhysicalType.MAP,
                repetition=repetition,
                children=(key, value),
                metadata=metadata,
            )

        # -----------------------------
        # SCALAR
        # -----------------------------
        type_names = node.type
        if not type_names and node.properties is not None:
            type_names = ("object",)
        mapping = map_type(type_names, node.format, path)

        # Shapeless containers ({"type": "object"} with no properties, arrays
        # without items) have no columnar layout and are kept as JSON text.
        fallback_from = _SHAPELESS.get(mapping.physical_type, mapping.fallback_from)

        if fallback_from is not None:
            ctx.diagnostics.append(
                Diagnostic(path, Severity.WARNING, UnsupportedTypeError(path, fallback_from))
            )
            log_event("UNSUPPORTED_TYPE_WARNING", {
                "path": path,
                "type": fallback_from,
                "stored_as": "BYTE_ARRAY/UTF8",
            }, level=logging.WARNING)
            return ParquetFieldSpec(
                name=name,
                physical_type=PhysicalType.BYTE_ARRAY,
                logical_annotation=LogicalAnnotation.UTF8,
                repetition=repetition,
                metadata=FieldMetadata(
                    description=node.description,
                    enum=node.enum,
                    fallback_from=fallback_from,
                ),
            )

        return ParquetFieldSpec(
            name=name,
            physical_type=mapping.physical_type,
            logical_annotation=mapping.logical_annotation,
            repetition=repetition,
            metadata=metadata,
        )


def compile_json_schema(
    document: Union[str, bytes, Mapping[str, Any]],
    name: str = "root",
    strict: bool = False,
) -> CompilationResult:
    """
    Parse and compile a JSON Schema document in one step.
    """
    timer = RequestTimer()
    parsed = parse_schema_document(document, name=name)

    diagnostics: List[Diagnostic] = []
    schema = SchemaCompiler(strict=strict).compile(
        parsed.root,
        parsed.definitions,
        name=name,
        diagnostics=diagnostics,
    )

    log_event("SCHEMA_COMPILATION_COMPLETED", {
        "name": name,
        "strict": strict,
        "fields": len(schema.children),
        "warnings": sum(1 for d in diagnostics if d.severity == Severity.WARNING),
        "errors": sum(1 for d in diagnostics if d.severity == Severity.ERROR),
        "duration_seconds": timer.duration(),
    })

    return CompilationResult(schema=schema, diagnostics=tuple(diagnostics))
