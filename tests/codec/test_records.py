from datetime import datetime
from decimal import Decimal

import pytest

from jsonparquet.codec.records import records_from_json_text, records_to_json
from jsonparquet.utils.exceptions import RecordParseError


class TestRecordsFromJsonText:
    def test_array(self):
        assert records_from_json_text('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_single_object(self):
        assert records_from_json_text('{"a": 1}') == [{"a": 1}]

    def test_jsonl(self):
        text = '{"a": 1}\n\n{"a": 2}\n'
        assert records_from_json_text(text) == [{"a": 1}, {"a": 2}]

    def test_bytes_with_bom(self):
        assert records_from_json_text('\ufeff[{"a": 1}]'.encode("utf-8")) == [{"a": 1}]

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty(self, text):
        assert records_from_json_text(text) == []

    def test_array_of_non_objects(self):
        with pytest.raises(RecordParseError) as info:
            records_from_json_text('[{"a": 1}, 7]')
        assert info.value.path == "[1]"

    def test_bad_jsonl_line(self):
        with pytest.raises(RecordParseError) as info:
            records_from_json_text('{"a": 1}\n{"a": \n')
        assert info.value.path == "line 2"

    def test_nan_is_rejected(self):
        with pytest.raises(RecordParseError, match="NaN"):
            records_from_json_text('{"a": NaN}')


class TestRecordsToJson:
    RECORDS = [{"name": "Zoë", "tags": None}, {"name": "Al", "tags": ["x"]}]

    def test_array(self):
        assert records_to_json(self.RECORDS) == '[{"name": "Zoë", "tags": null}, {"name": "Al", "tags": ["x"]}]'

    def test_lines(self):
        assert records_to_json(iter(self.RECORDS), lines=True).splitlines() == [
            '{"name": "Zoë", "tags": null}',
            '{"name": "Al", "tags": ["x"]}',
        ]

    def test_values_without_json_form_become_text(self):
        record = {"at": datetime(2024, 1, 15, 9, 30), "amount": Decimal("1.50")}
        assert records_to_json([record], lines=True) == '{"at": "2024-01-15 09:30:00", "amount": "1.50"}'
