import base64
import logging

from fastapi import FastAPI, HTTPException

from jsonparquet.codec.reader import read_records
from jsonparquet.codec.writer import write_records
from jsonparquet.execution.settings import CodecSettings
from jsonparquet.observability.logger import generate_request_id, log_event
from jsonparquet.outputs.tag_schema import to_tag_dict
from jsonparquet.pipeline.schema_compiler import compile_json_schema
from jsonparquet.utils.exceptions import (
    CorruptDataError,
    SchemaCompileError,
    TypeMismatchError,
)

app = FastAPI(
    title="JSON Schema to Parquet Accelerator",
    version="1.0.0"
)

settings = CodecSettings().with_env()


def _error(status_code: int, exc, request_id: str):
    log_event("REQUEST_FAILED", {
        "request_id": request_id,
        "error": type(exc).__name__,
        "path": getattr(exc, "path", None),
        "message": str(exc),
    }, level=logging.WARNING)
    return HTTPException(
        status_code=status_code,
        detail={
            "status": "ERROR",
            "error": type(exc).__name__,
            "path": getattr(exc, "path", None),
            "message": str(exc),
        },
    )


def _compile_payload(payload: dict):
    if not isinstance(payload.get("schema"), dict):
        raise SchemaCompileError(None, "payload must contain a 'schema' object")
    return compile_json_schema(
        payload["schema"],
        name=payload.get("name", settings.root_name),
        strict=bool(payload.get("strict", settings.strict)),
    )


@app.post("/compile-schema")
def compile_schema(payload: dict):
    request_id = generate_request_id()
    try:
        result = _compile_payload(payload)
    except SchemaCompileError as e:
        # STRICT compile failure -> client error, not server crash
        raise _error(422, e, request_id)

    return {
        "status": "SUCCESS",
        "request_id": request_id,
        "schema": to_tag_dict(result.schema),
        "diagnostics": [d.to_dict() for d in result.diagnostics],
    }


@app.post("/convert")
def convert(payload: dict):
    """
    Compile the schema, encode the records and echo the decoded rows.
    """
    request_id = generate_request_id()
    records = payload.get("records", [])
    try:
        result = _compile_payload(payload)
        parquet_bytes = write_records(
            records,
            result.schema,
            row_group_parallelism=settings.row_group_parallelism,
            row_group_size=settings.row_group_size,
            compression=settings.compression,
        )
        preview = list(read_records(parquet_bytes, result.schema)) if payload.get("preview") else None
    except (SchemaCompileError, TypeMismatchError) as e:
        raise _error(422, e, request_id)
    except CorruptDataError as e:
        raise _error(500, e, request_id)

    response = {
        "status": "SUCCESS",
        "request_id": request_id,
        "rows": len(records),
        "parquet_base64": base64.b64encode(parquet_bytes).decode("ascii"),
        "diagnostics": [d.to_dict() for d in result.diagnostics],
    }
    if preview is not None:
        response["preview"] = preview
    return response


@app.post("/read")
def read(payload: dict):
    request_id = generate_request_id()
    try:
        parquet_bytes = base64.b64decode(payload.get("parquet_base64", ""), validate=True)
    except ValueError as e:
        raise _error(400, CorruptDataError(None, f"invalid base64 payload: {e}"), request_id)

    try:
        records = list(read_records(parquet_bytes))
    except CorruptDataError as e:
        raise _error(400, e, request_id)

    return {"status": "SUCCESS", "request_id": request_id, "records": records}
