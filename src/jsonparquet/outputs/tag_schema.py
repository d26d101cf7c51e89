"""
Tag-string interchange format for compiled schemas.

Each field is rendered as

    {"Tag": "name=<name>[, inname=<in>], type=<PHYSICAL>[, convertedtype=<LOGICAL>], repetitiontype=<REP>",
     "Fields": [...]}

which is the grammar consumed by parquet-go style JSON writers. GROUP
fields carry no "type=" attribute; a typeless tag with "Fields" is a group.
DATE and DATE_TIME annotations are written as convertedtype=UTF8 since the
values are stored as text.
"""

import json
from typing import Any, Dict, List, Mapping, Union

from jsonparquet.canonical.field_spec import (
    LogicalAnnotation,
    ParquetFieldSpec,
    PhysicalType,
    Repetition,
)
from jsonparquet.utils.exceptions import SchemaCompileError


def format_tag(spec: ParquetFieldSpec) -> str:
    parts = [f"name={spec.name}"]
    if spec.in_name:
        parts.append(f"inname={spec.in_name}")
    if spec.physical_type != PhysicalType.GROUP:
        parts.append(f"type={spec.physical_type}")
    if spec.logical_annotation in LogicalAnnotation.TEXT:
        parts.append("convertedtype=UTF8")
    parts.append(f"repetitiontype={spec.repetition}")
    return ", ".join(parts)


def to_tag_dict(spec: ParquetFieldSpec) -> Dict[str, Any]:
    field: Dict[str, Any] = {"Tag": format_tag(spec)}
    if spec.children:
        field["Fields"] = [to_tag_dict(child) for child in spec.children]
    return field


def to_tag_json(spec: ParquetFieldSpec, indent: Union[int, None] = None) -> str:
    return json.dumps(to_tag_dict(spec), indent=indent)


# ==================================================
# PARSING
# ==================================================

def parse_tag(tag: str) -> Dict[str, str]:
    """
    Split a tag string into its key=value attributes.
    """
    attributes: Dict[str, str] = {}
    for part in tag.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise SchemaCompileError(None, f"malformed tag attribute {part!r} in {tag!r}")
        key, value = part.split("=", 1)
        attributes[key.strip().lower()] = value.strip()
    return attributes


def _field_from_tag_dict(raw: Mapping[str, Any], path: str) -> ParquetFieldSpec:
    if not isinstance(raw, Mapping) or "Tag" not in raw:
        raise SchemaCompileError(path, "tag schema field must be an object with a 'Tag'")

    attributes = parse_tag(raw["Tag"])
    name = attributes.get("name")
    if not name:
        raise SchemaCompileError(path, f"tag {raw['Tag']!r} has no name")
    path = f"{path}.{name}" if path else name

    raw_children: List[Any] = raw.get("Fields") or []
    children = tuple(_field_from_tag_dict(child, path) for child in raw_children)

    physical_type = attributes.get("type", "").upper()
    if not physical_type:
        if not children:
            raise SchemaCompileError(path, "typeless tag without Fields")
        physical_type = PhysicalType.GROUP
    if not PhysicalType.is_valid(physical_type):
        raise SchemaCompileError(path, f"unknown physical type {physical_type!r}")

    repetition = attributes.get("repetitiontype", Repetition.REQUIRED).upper()
    if not Repetition.is_valid(repetition):
        raise SchemaCompileError(path, f"unknown repetition type {repetition!r}")

    converted = attributes.get("convertedtype")
    if converted is not None and converted.upper() != LogicalAnnotation.UTF8:
        raise SchemaCompileError(path, f"unsupported convertedtype {converted!r}")

    if physical_type == PhysicalType.LIST and len(children) != 1:
        raise SchemaCompileError(path, "LIST must have exactly one element field")
    if physical_type == PhysicalType.MAP and len(children) != 2:
        raise SchemaCompileError(path, "MAP must have key and value fields")

    return ParquetFieldSpec(
        name=name,
        physical_type=physical_type,
        repetition=repetition,
        logical_annotation=LogicalAnnotation.UTF8 if converted else None,
        children=children,
        in_name=attributes.get("inname"),
    )


def parse_tag_schema(document: Union[str, bytes, Mapping[str, Any]]) -> ParquetFieldSpec:
    """
    Build a ParquetFieldSpec tree from tag JSON (text or decoded object).
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            raise SchemaCompileError(None, f"tag schema is not valid JSON: {exc}") from exc
    return _field_from_tag_dict(document, "")
