from typing import NamedTuple, Optional, Sequence

from jsonparquet.canonical.field_spec import LogicalAnnotation, PhysicalType
from jsonparquet.utils.exceptions import SchemaCompileError


class TypeMapping(NamedTuple):
    physical_type: str
    logical_annotation: Optional[str]
    is_nullable: bool
    # Original type name when no mapping exists and UTF8 text is used
    fallback_from: Optional[str] = None


def carrier_type(type_names: Sequence[str], path: Optional[str] = None) -> str:
    """
    First non-"null" member of a type union.
    """
    for name in type_names:
        if name != "null":
            return name
    if not type_names:
        raise SchemaCompileError(path, "schema node declares no type")
    raise SchemaCompileError(path, "type union contains only 'null'")


def map_type(
    type_names: Sequence[str],
    format: Optional[str] = None,
    path: Optional[str] = None,
) -> TypeMapping:
    """
    Map a JSON Schema type (+ format) to a Parquet physical type.

    Unrecognized types never fail: they fall back to BYTE_ARRAY/UTF8 and
    report fallback_from so the caller can flag the field as lossy.
    """
    is_nullable = "null" in type_names
    carrier = carrier_type(type_names, path)

    if carrier == "string":
        annotation = LogicalAnnotation.BY_FORMAT.get(format, LogicalAnnotation.UTF8)
        return TypeMapping(PhysicalType.BYTE_ARRAY, annotation, is_nullable)

    if carrier == "integer":
        return TypeMapping(PhysicalType.INT64, None, is_nullable)

    if carrier == "number":
        if format == "float":
            return TypeMapping(PhysicalType.FLOAT, None, is_nullable)
        return TypeMapping(PhysicalType.DOUBLE, None, is_nullable)

    if carrier == "boolean":
        return TypeMapping(PhysicalType.BOOLEAN, None, is_nullable)

    if carrier == "array":
        return TypeMapping(PhysicalType.LIST, None, is_nullable)

    if carrier == "object":
        return TypeMapping(PhysicalType.GROUP, None, is_nullable)

    # Lossy fallback
    return TypeMapping(
        PhysicalType.BYTE_ARRAY,
        LogicalAnnotation.UTF8,
        is_nullable,
        fallback_from=carrier,
    )
