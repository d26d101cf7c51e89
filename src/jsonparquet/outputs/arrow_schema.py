import json
from typing import Dict, Optional

import pyarrow as pa

from jsonparquet.canonical.field_spec import (
    FieldMetadata,
    LogicalAnnotation,
    ParquetFieldSpec,
    PhysicalType,
    Repetition,
)
from jsonparquet.utils.exceptions import SchemaCompileError

# Arrow field metadata keys
META_DESCRIPTION = b"description"
META_ENUM = b"enum"
META_FORMAT = b"format"
META_FALLBACK = b"fallback_from"
META_IN_NAME = b"inname"

_SCALAR_TYPES = {
    PhysicalType.INT32: pa.int32(),
    PhysicalType.INT64: pa.int64(),
    PhysicalType.FLOAT: pa.float32(),
    PhysicalType.DOUBLE: pa.float64(),
    PhysicalType.BOOLEAN: pa.bool_(),
}


# ==================================================
# SPEC -> ARROW
# ==================================================

def _field_metadata(spec: ParquetFieldSpec) -> Optional[Dict[bytes, bytes]]:
    meta = spec.metadata
    metadata: Dict[bytes, bytes] = {}
    if meta.description:
        metadata[META_DESCRIPTION] = meta.description.encode("utf-8")
    if meta.enum is not None:
        metadata[META_ENUM] = json.dumps(list(meta.enum)).encode("utf-8")
    if meta.fallback_from:
        metadata[META_FALLBACK] = meta.fallback_from.encode("utf-8")
    if spec.logical_annotation in LogicalAnnotation.FORMATS:
        metadata[META_FORMAT] = LogicalAnnotation.FORMATS[spec.logical_annotation].encode("utf-8")
    if spec.in_name:
        metadata[META_IN_NAME] = spec.in_name.encode("utf-8")
    return metadata or None


def to_arrow_type(spec: ParquetFieldSpec) -> pa.DataType:
    physical_type = spec.physical_type

    if physical_type == PhysicalType.BYTE_ARRAY:
        return pa.string() if spec.logical_annotation else pa.binary()

    if physical_type in _SCALAR_TYPES:
        return _SCALAR_TYPES[physical_type]

    if physical_type == PhysicalType.LIST:
        return pa.list_(to_arrow_field(spec.element))

    if physical_type == PhysicalType.MAP:
        return pa.map_(to_arrow_type(spec.key), to_arrow_field(spec.value))

    if physical_type == PhysicalType.GROUP:
        if not spec.children:
            raise SchemaCompileError(spec.name, "GROUP without fields cannot be written")
        return pa.struct([to_arrow_field(child) for child in spec.children])

    raise SchemaCompileError(spec.name, f"unknown physical type {physical_type!r}")


def to_arrow_field(spec: ParquetFieldSpec) -> pa.Field:
    return pa.field(
        spec.name,
        to_arrow_type(spec),
        nullable=spec.repetition != Repetition.REQUIRED,
        metadata=_field_metadata(spec),
    )


def to_arrow_schema(root: ParquetFieldSpec) -> pa.Schema:
    """
    Top-level columns of the Parquet file: the children of the root GROUP.
    """
    if root.physical_type != PhysicalType.GROUP:
        raise SchemaCompileError(
            root.name,
            f"root field must be a GROUP to hold records, got {root.physical_type}",
        )
    return pa.schema([to_arrow_field(child) for child in root.children])


# ==================================================
# ARROW -> SPEC
# ==================================================

def _decode(metadata, key: bytes) -> Optional[str]:
    if metadata and key in metadata:
        return metadata[key].decode("utf-8")
    return None


def _parse_arrow_field(field: pa.Field, name: Optional[str] = None) -> ParquetFieldSpec:
    metadata = field.metadata
    enum = _decode(metadata, META_ENUM)
    fallback_from = _decode(metadata, META_FALLBACK)
    field_meta = FieldMetadata(
        description=_decode(metadata, META_DESCRIPTION),
        enum=tuple(json.loads(enum)) if enum is not None else None,
        fallback_from=fallback_from,
    )
    repetition = Repetition.OPTIONAL if field.nullable else Repetition.REQUIRED
    name = name or field.name
    in_name = _decode(metadata, META_IN_NAME)
    arrow_type = field.type

    # --------------------
    # STRUCT / GROUP
    # --------------------
    if pa.types.is_struct(arrow_type):
        children = tuple(
            _parse_arrow_field(arrow_type.field(i))
            for i in range(arrow_type.num_fields)
        )
        return ParquetFieldSpec(
            name=name,
            physical_type=PhysicalType.GROUP,
            repetition=repetition,
            children=children,
            metadata=field_meta,
            in_name=in_name,
        )

    # --------------------
    # LIST
    # --------------------
    if pa.types.is_list(arrow_type) or pa.types.is_large_list(arrow_type):
        element = _parse_arrow_field(arrow_type.value_field, name="element")
        return ParquetFieldSpec(
            name=name,
            physical_type=PhysicalType.LIST,
            repetition=repetition,
            children=(element,),
            metadata=field_meta,
            in_name=in_name,
        )

    # --------------------
    # MAP
    # --------------------
    if pa.types.is_map(arrow_type):
        key = _parse_arrow_field(arrow_type.key_field, name="key")
        value = _parse_arrow_field(arrow_type.item_field, name="value")
        return ParquetFieldSpec(
            name=name,
            physical_type=PhysicalType.MAP,
            repetition=repetition,
            children=(key, value),
            metadata=field_meta,
            in_name=in_name,
        )

    # Dictionary-encoded column
    if pa.types.is_dictionary(arrow_type):
        return _parse_arrow_field(
            pa.field(field.name, arrow_type.value_type, nullable=field.nullable, metadata=metadata),
            name=name,
        )

    # --------------------
    # SCALARS
    # --------------------
    logical_annotation = None
    if pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
        physical_type = PhysicalType.BYTE_ARRAY
        fmt = _decode(metadata, META_FORMAT)
        logical_annotation = LogicalAnnotation.BY_FORMAT.get(fmt, LogicalAnnotation.UTF8)
    elif pa.types.is_binary(arrow_type) or pa.types.is_large_binary(arrow_type):
        physical_type = PhysicalType.BYTE_ARRAY
    elif pa.types.is_boolean(arrow_type):
        physical_type = PhysicalType.BOOLEAN
    elif pa.types.is_int64(arrow_type) or pa.types.is_uint32(arrow_type) or pa.types.is_uint64(arrow_type):
        physical_type = PhysicalType.INT64
    elif pa.types.is_integer(arrow_type):
        physical_type = PhysicalType.INT32
    elif pa.types.is_float32(arrow_type) or pa.types.is_float16(arrow_type):
        physical_type = PhysicalType.FLOAT
    elif pa.types.is_float64(arrow_type):
        physical_type = PhysicalType.DOUBLE
    else:
        # Timestamps, decimals, ... are passed through as decoded by pyarrow
        physical_type = PhysicalType.BYTE_ARRAY
        logical_annotation = LogicalAnnotation.UTF8
        field_meta = FieldMetadata(
            description=field_meta.description,
            enum=field_meta.enum,
            fallback_from=str(arrow_type),
        )

    return ParquetFieldSpec(
        name=name,
        physical_type=physical_type,
        logical_annotation=logical_annotation,
        repetition=repetition,
        metadata=field_meta,
        in_name=in_name,
    )


def from_arrow_schema(schema: pa.Schema, name: str = "root") -> ParquetFieldSpec:
    """
    Rebuild a ParquetFieldSpec tree from the Arrow schema embedded in a file.
    """
    return ParquetFieldSpec(
        name=name,
        physical_type=PhysicalType.GROUP,
        repetition=Repetition.REQUIRED,
        children=tuple(_parse_arrow_field(field) for field in schema),
    )
