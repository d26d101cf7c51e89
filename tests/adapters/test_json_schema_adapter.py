import json

import pytest

from jsonparquet.adapters.json_schema_adapter import (
    JSONSchemaAdapter,
    load_schema_json,
    parse_schema_document,
)
from jsonparquet.utils.exceptions import SchemaCompileError


def test_parse_document(order_schema):
    document = parse_schema_document(order_schema, name="order")

    assert document.name == "order"
    assert [name for name, _ in document.root.properties][:3] == ["id", "customer", "status"]
    assert "Customer" in document.definitions
    assert len(document.definitions) == 1


def test_parse_text_keeps_property_order():
    document = parse_schema_document('{"type": "object", "properties": {"z": {}, "a": {}, "m": {}}}')
    assert [name for name, _ in document.root.properties] == ["z", "a", "m"]


def test_document_without_defs():
    document = parse_schema_document({"type": "string"})
    assert len(document.definitions) == 0


@pytest.mark.parametrize(
    "text,message",
    [
        ('{"type": "object",', "not valid JSON"),
        ('{"type": "string", "type": "integer"}', "duplicate key 'type'"),
        ('{"type": "number", "default": NaN}', "Invalid JSON constant"),
    ],
)
def test_load_schema_json_errors(text, message):
    with pytest.raises(SchemaCompileError, match=message):
        load_schema_json(text)


def test_document_must_be_object():
    with pytest.raises(SchemaCompileError, match="must be a JSON object"):
        parse_schema_document("[1, 2]")


class TestJSONSchemaAdapter:
    def test_entity_name_from_file_name(self, tmp_path, person_schema):
        path = tmp_path / "person.json"
        path.write_text(json.dumps(person_schema), encoding="utf-8")

        document = JSONSchemaAdapter(str(path)).parse()
        assert document.name == "person"
        assert document.root.required == frozenset({"Name"})

    def test_explicit_entity_name_and_bom(self, tmp_path, person_schema):
        path = tmp_path / "schema.json"
        path.write_bytes(b"\xef\xbb\xbf" + json.dumps(person_schema).encode("utf-8"))

        assert JSONSchemaAdapter(str(path), entity_name="people").parse().name == "people"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JSONSchemaAdapter(str(tmp_path / "nope.json")).parse()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("  \n", encoding="utf-8")

        with pytest.raises(SchemaCompileError, match="empty"):
            JSONSchemaAdapter(str(path)).parse()
