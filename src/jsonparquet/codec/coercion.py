"""
Record value conversion between JSON values and column values.

WRITE DIRECTION (coerce_record)
===============================

    column type            accepted JSON value          stored as
    -----------            -------------------          ---------
    BYTE_ARRAY/UTF8        string                       str
    INT32 / INT64          integer, fractional number   int, truncated toward zero
    FLOAT / DOUBLE         integer, number              float
    BOOLEAN                true / false                 bool
    LIST                   array                        list
    MAP                    object                       [(key, value), ...]
    GROUP                  object                       dict keyed by column name
    lossy fallback         anything                     str (JSON text for non-strings)

Strings are never parsed into numbers or booleans, and booleans are never
accepted as numbers. A missing or null value at a REQUIRED column is an
error; keys not declared in the schema are ignored.

READ DIRECTION (decode_record)
==============================
Values come back as decoded by pyarrow; MAP entries are folded back into
dicts and columns are re-keyed by their record key ("inname").
"""

import json
import math
from typing import Any, Dict, Mapping

from jsonparquet.canonical.field_spec import (
    LogicalAnnotation,
    ParquetFieldSpec,
    PhysicalType,
    Repetition,
)
from jsonparquet.utils.exceptions import TypeMismatchError

INT32_RANGE = (-(2 ** 31), 2 ** 31 - 1)
INT64_RANGE = (-(2 ** 63), 2 ** 63 - 1)


def _describe(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _mismatch(path: str, spec: ParquetFieldSpec, value: Any) -> TypeMismatchError:
    return TypeMismatchError(
        path,
        f"cannot store {_describe(value)} value {value!r} in {spec.physical_type} column",
    )


def _coerce_integer(value: Any, spec: ParquetFieldSpec, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _mismatch(path, spec, value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _mismatch(path, spec, value)
        value = math.trunc(value)

    low, high = INT32_RANGE if spec.physical_type == PhysicalType.INT32 else INT64_RANGE
    if not low <= value <= high:
        raise TypeMismatchError(path, f"value {value} is out of range for {spec.physical_type}")
    return value


def coerce_value(value: Any, spec: ParquetFieldSpec, path: str) -> Any:
    if value is None:
        if spec.repetition == Repetition.REQUIRED:
            raise TypeMismatchError(path, "required value is missing")
        return None

    physical_type = spec.physical_type

    if spec.metadata.is_lossy:
        return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)

    if physical_type == PhysicalType.BYTE_ARRAY:
        if spec.logical_annotation in LogicalAnnotation.TEXT:
            if not isinstance(value, str):
                raise _mismatch(path, spec, value)
            return value
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        raise _mismatch(path, spec, value)

    if physical_type in PhysicalType.INTEGER:
        return _coerce_integer(value, spec, path)

    if physical_type in PhysicalType.FLOATING:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(path, spec, value)
        return float(value)

    if physical_type == PhysicalType.BOOLEAN:
        if not isinstance(value, bool):
            raise _mismatch(path, spec, value)
        return value

    if physical_type == PhysicalType.LIST:
        if not isinstance(value, (list, tuple)):
            raise _mismatch(path, spec, value)
        element = spec.element
        return [
            coerce_value(item, element, f"{path}[{index}]")
            for index, item in enumerate(value)
        ]

    if physical_type == PhysicalType.MAP:
        if not isinstance(value, Mapping):
            raise _mismatch(path, spec, value)
        entries = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeMismatchError(path, f"map key {key!r} is not a string")
            entries.append((key, coerce_value(item, spec.value, f"{path}.{key}")))
        return entries

    if physical_type == PhysicalType.GROUP:
        if not isinstance(value, Mapping):
            raise _mismatch(path, spec, value)
        return _coerce_group(value, spec, path)

    raise _mismatch(path, spec, value)


def _coerce_group(value: Mapping[str, Any], spec: ParquetFieldSpec, path: str) -> Dict[str, Any]:
    return {
        child.name: coerce_value(
            value.get(child.record_key),
            child,
            f"{path}.{child.record_key}",
        )
        for child in spec.children
    }


def coerce_record(record: Any, root: ParquetFieldSpec, row_index: int) -> Dict[str, Any]:
    """
    Convert one JSON object into a row of column values for root.
    """
    path = f"{root.name}[{row_index}]"
    if not isinstance(record, Mapping):
        raise TypeMismatchError(path, f"record must be an object, got {_describe(record)}")
    return _coerce_group(record, root, path)


# ==================================================
# READ DIRECTION
# ==================================================

def decode_value(value: Any, spec: ParquetFieldSpec) -> Any:
    if value is None:
        return None

    physical_type = spec.physical_type

    if physical_type == PhysicalType.GROUP:
        return {
            child.record_key: decode_value(value.get(child.name), child)
            for child in spec.children
        }

    if physical_type == PhysicalType.LIST:
        return [decode_value(item, spec.element) for item in value]

    if physical_type == PhysicalType.MAP:
        return {key: decode_value(item, spec.value) for key, item in value}

    return value


def decode_record(row: Mapping[str, Any], root: ParquetFieldSpec) -> Dict[str, Any]:
    return {
        child.record_key: decode_value(row.get(child.name), child)
        for child in root.children
    }
