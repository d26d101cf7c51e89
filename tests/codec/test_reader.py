"""
Tests for reader.py - Parquet bytes back to JSON records.

Coverage:
  - full round trips through the writer for flat and nested records
  - reading with the schema embedded in the file vs a target schema
  - fail-fast on truncated / foreign buffers (before any row is yielded)
  - single-pass iteration and per-row cancellation
"""

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from jsonparquet.canonical.field_spec import PhysicalType, Repetition
from jsonparquet.codec.cancellation import CancellationToken
from jsonparquet.codec.reader import ParquetRecordReader, read_records
from jsonparquet.codec.writer import write_records
from jsonparquet.outputs.tag_schema import parse_tag_schema
from jsonparquet.pipeline.schema_compiler import compile_json_schema
from jsonparquet.utils.exceptions import (
    CorruptDataError,
    OperationCancelledError,
    TypeMismatchError,
    UseAfterCloseError,
)


@pytest.fixture
def person(person_schema):
    return compile_json_schema(person_schema).schema


@pytest.fixture
def person_payload(person, person_records):
    return write_records(person_records, person)


class TestRoundTrip:
    def test_flat_records(self, person_payload, person_records):
        assert list(read_records(person_payload)) == person_records

    def test_nested_records(self, order_schema, order_records):
        schema = compile_json_schema(order_schema).schema
        payload = write_records(order_records, schema)

        assert list(read_records(payload)) == order_records

    def test_order_across_row_groups(self, person):
        records = [{"Name": f"n{i}", "Age": i} for i in range(57)]
        payload = write_records(records, person, row_group_size=10, row_group_parallelism=4)

        assert list(read_records(payload, batch_size=8)) == records

    def test_lossy_column_comes_back_as_json_text(self):
        document = {
            "type": "object",
            "properties": {"id": {"type": "integer"}, "extra": {"type": "object"}},
        }
        compiled = compile_json_schema(document)
        assert compiled.lossy_fields == ["root.extra"]

        payload = write_records([{"id": 1, "extra": {"k": [1, 2]}}], compiled.schema)
        assert list(read_records(payload)) == [{"id": 1, "extra": '{"k": [1, 2]}'}]

    def test_empty_file(self, person):
        payload = write_records([], person)
        reader = ParquetRecordReader(payload)

        assert reader.num_rows == 0
        assert list(reader) == []


class TestSchemas:
    def test_embedded_schema(self, person_payload):
        reader = ParquetRecordReader(person_payload)
        schema = reader.embedded_schema

        assert [c.name for c in schema.children] == ["Name", "Age"]
        assert schema.child("Name").repetition == Repetition.REQUIRED
        assert schema.child("Age").physical_type == PhysicalType.INT64
        assert reader.schema is schema

    def test_target_schema_projects_columns(self, person_payload):
        target = compile_json_schema({
            "type": "object",
            "properties": {"Name": {"type": "string"}},
        }).schema

        assert list(read_records(person_payload, schema=target)) == [{"Name": "Alice"}, {"Name": "Bob"}]

    def test_target_schema_casts_columns(self, person_payload):
        target = parse_tag_schema({
            "Tag": "name=root",
            "Fields": [
                {"Tag": "name=Age, type=INT32, repetitiontype=OPTIONAL"},
                {"Tag": "name=Name, type=BYTE_ARRAY, convertedtype=UTF8, repetitiontype=OPTIONAL"},
            ],
        })
        records = list(read_records(person_payload, schema=target))

        assert records == [{"Age": 25, "Name": "Alice"}, {"Age": 30, "Name": "Bob"}]

    def test_target_column_missing(self, person_payload):
        target = compile_json_schema({
            "type": "object",
            "properties": {"Email": {"type": "string"}},
        }).schema

        with pytest.raises(TypeMismatchError) as info:
            ParquetRecordReader(person_payload, schema=target)
        assert info.value.path == "root.Email"

    def test_reads_files_from_other_writers(self):
        table = pa.table({"x": pa.array([1, 2], pa.int16()), "y": ["a", None]})
        sink = pa.BufferOutputStream()
        pq.write_table(table, sink)

        records = list(read_records(sink.getvalue().to_pybytes()))
        assert records == [{"x": 1, "y": "a"}, {"x": 2, "y": None}]


class TestFailures:
    @pytest.mark.parametrize("payload", [b"", b"definitely not parquet", b"PAR1" + b"\x00" * 16])
    def test_foreign_bytes(self, payload):
        with pytest.raises(CorruptDataError):
            ParquetRecordReader(payload)

    def test_truncated_buffer_fails_before_yielding(self, person_payload):
        with pytest.raises(CorruptDataError):
            read_records(person_payload[:-12])

    def test_second_iteration(self, person_payload, person_records):
        reader = ParquetRecordReader(person_payload)
        assert list(reader) == person_records

        with pytest.raises(UseAfterCloseError):
            iter(reader)

    def test_rows_are_pulled_lazily(self, person):
        records = [{"Name": f"n{i}", "Age": i} for i in range(100)]
        payload = write_records(records, person, row_group_size=10)

        rows = read_records(payload, batch_size=5)
        assert next(rows) == records[0]
        assert next(rows) == records[1]

    def test_cancellation(self, person_payload):
        token = CancellationToken()
        rows = read_records(person_payload, cancel_token=token)

        assert next(rows)["Name"] == "Alice"
        token.cancel()
        with pytest.raises(OperationCancelledError):
            next(rows)
