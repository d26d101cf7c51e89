import os
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from jsonparquet.canonical.json_schema import (
    JSONSchemaNode,
    SchemaDefinitionTable,
    node_from_dict,
)
from jsonparquet.utils.exceptions import SchemaCompileError


@dataclass(frozen=True)
class SchemaDocument:
    """
    A parsed JSON Schema document: the root node plus its $defs table.
    """
    name: str
    root: JSONSchemaNode
    definitions: SchemaDefinitionTable


def _reject_duplicate_keys(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise SchemaCompileError(None, f"duplicate key {key!r} in schema document")
        result[key] = value
    return result


def _reject_nonstandard_constant(value: str):
    raise SchemaCompileError(None, f"Invalid JSON constant: {value}")


def load_schema_json(text: Union[str, bytes]) -> Any:
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    try:
        return json.loads(
            text,
            object_pairs_hook=_reject_duplicate_keys,
            parse_constant=_reject_nonstandard_constant,
        )
    except json.JSONDecodeError as exc:
        raise SchemaCompileError(None, f"schema is not valid JSON: {exc}") from exc


def parse_schema_document(
    document: Union[str, bytes, Mapping[str, Any]],
    name: str = "root",
) -> SchemaDocument:
    """
    Parse JSON Schema text (or an already decoded object) into the model.

    Only the top-level "$defs" object feeds the definition table; nested
    "$defs" and legacy "definitions" are ignored.
    """
    raw = document if isinstance(document, Mapping) else load_schema_json(document)
    if not isinstance(raw, Mapping):
        raise SchemaCompileError(name, "schema document must be a JSON object")

    return SchemaDocument(
        name=name,
        root=node_from_dict(raw, name),
        definitions=SchemaDefinitionTable(raw.get("$defs")),
    )


class JSONSchemaAdapter:
    """
    File-based JSON Schema ingestion adapter.

    Supports:
    - UTF-8 text with or without BOM
    - $defs (top level only)
    - Entity name derived from the file name when not given
    """

    def __init__(self, file_path: str, entity_name: Optional[str] = None):
        self.file_path = file_path
        self.entity_name = (
            entity_name
            if entity_name
            else os.path.splitext(os.path.basename(file_path))[0]
        )

    def parse(self) -> SchemaDocument:
        if not os.path.exists(self.file_path):
            raise FileNotFoundError(f"Schema file not found: {self.file_path}")

        with open(self.file_path, "r", encoding="utf-8-sig") as f:
            raw = f.read().strip()

        if not raw:
            raise SchemaCompileError(self.entity_name, "schema file is empty")

        return parse_schema_document(raw, name=self.entity_name)
