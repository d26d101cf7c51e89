import json
from typing import Any, Dict, Iterable, List, Union

from jsonparquet.utils.exceptions import RecordParseError


def _reject_nonstandard_constant(value: str):
    raise RecordParseError(None, f"Invalid JSON constant: {value}")


def _loads(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_nonstandard_constant)


def records_from_json_text(text: Union[str, bytes]) -> List[Dict[str, Any]]:
    """
    Parse records from JSON text.

    Accepts a JSON array of objects, a single JSON object, or JSONL (one
    object per line). Unlike lenient ingestion, a bad line is an error.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    raw = text.strip()
    if not raw:
        return []

    # Try full JSON
    try:
        parsed = _loads(raw)
    except json.JSONDecodeError:
        parsed = None
    else:
        if isinstance(parsed, dict):
            return [parsed]
        if isinstance(parsed, list):
            for index, item in enumerate(parsed):
                if not isinstance(item, dict):
                    raise RecordParseError(f"[{index}]", "record is not a JSON object")
            return parsed

    # JSONL fallback
    records = []
    for line_no, line in enumerate(raw.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = _loads(line)
        except json.JSONDecodeError as exc:
            raise RecordParseError(f"line {line_no}", f"invalid JSON: {exc.msg}") from exc
        if not isinstance(obj, dict):
            raise RecordParseError(f"line {line_no}", "record is not a JSON object")
        records.append(obj)

    return records


def records_to_json(records: Iterable[Dict[str, Any]], lines: bool = False) -> str:
    """
    Serialize records as a JSON array, or as JSONL when lines=True.
    Values JSON cannot represent (timestamps, decimals) are written as text.
    """
    if lines:
        return "\n".join(json.dumps(record, ensure_ascii=False, default=str) for record in records)
    return json.dumps(list(records), ensure_ascii=False, default=str)
