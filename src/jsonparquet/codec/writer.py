"""
Parquet write path for JSON records.

DATA FLOW
=========

    records ──► buffer (row_group_size rows) ──► worker pool ──► ordered queue ──► ParquetWriter
                                                 coerce +         head-of-line       one row group
                                                 pa.Table         in submission      per chunk
                                                                  order

STEP 1: BUFFER
--------------
Records are buffered until row_group_size rows are collected. Row-group
boundaries depend only on row_group_size, never on parallelism.

STEP 2: ENCODE (concurrent)
---------------------------
Each full buffer is handed to a ThreadPoolExecutor worker which owns it
exclusively: values are coerced against the compiled schema and turned
into a pyarrow Table. At most row_group_parallelism chunks are in flight.

STEP 3: APPEND (serial)
-----------------------
Finished tables are appended by the single pyarrow ParquetWriter strictly
in submission order, so the output bytes are identical for any
parallelism value.

STATE MACHINE
=============

    IDLE ──open()──► OPENED ──(row group ready)──► FLUSHING ──► OPENED
                        │
                     close() ──► final flush ──► CLOSED

write() is only accepted while OPENED; any use after CLOSED raises
UseAfterCloseError. A failed or cancelled writer discards its buffer and
moves straight to CLOSED.
"""

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Deque, Iterable, List, Mapping, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from jsonparquet.canonical.field_spec import ParquetFieldSpec
from jsonparquet.codec.cancellation import CancellationToken
from jsonparquet.codec.coercion import coerce_record
from jsonparquet.observability.logger import RequestTimer, log_event
from jsonparquet.outputs.arrow_schema import to_arrow_schema
from jsonparquet.utils.exceptions import TypeMismatchError, UseAfterCloseError

logger = logging.getLogger(__name__)

DEFAULT_ROW_GROUP_SIZE = 10_000
DEFAULT_COMPRESSION = "snappy"


class WriterState:
    IDLE = "IDLE"
    OPENED = "OPENED"
    FLUSHING = "FLUSHING"
    CLOSED = "CLOSED"


def _encode_row_group(
    rows: List[Mapping[str, Any]],
    first_row: int,
    root: ParquetFieldSpec,
    arrow_schema: pa.Schema,
) -> pa.Table:
    coerced = [
        coerce_record(record, root, first_row + offset)
        for offset, record in enumerate(rows)
    ]
    try:
        return pa.Table.from_pylist(coerced, schema=arrow_schema)
    except (pa.ArrowInvalid, pa.ArrowTypeError) as exc:
        last_row = first_row + len(rows) - 1
        raise TypeMismatchError(
            f"{root.name}[{first_row}:{last_row}]",
            f"rows rejected by column encoder: {exc}",
        ) from exc


class ParquetRecordWriter:
    """
    Streams JSON records into an in-memory Parquet buffer.

    Example:
        >>> writer = ParquetRecordWriter(schema, row_group_parallelism=4)
        >>> with writer:
        ...     writer.write_all(records)
        >>> payload = writer.getvalue()
    """

    def __init__(
        self,
        schema: ParquetFieldSpec,
        row_group_parallelism: int = 1,
        row_group_size: int = DEFAULT_ROW_GROUP_SIZE,
        compression: Optional[str] = DEFAULT_COMPRESSION,
        cancel_token: Optional[CancellationToken] = None,
    ):
        if not isinstance(row_group_parallelism, int) or row_group_parallelism < 1:
            raise ValueError(f"row_group_parallelism must be a positive integer, got {row_group_parallelism!r}")
        if not isinstance(row_group_size, int) or row_group_size < 1:
            raise ValueError(f"row_group_size must be a positive integer, got {row_group_size!r}")

        self.schema = schema
        self.row_group_parallelism = row_group_parallelism
        self.row_group_size = row_group_size
        self.compression = compression
        self.cancel_token = cancel_token

        self.arrow_schema = to_arrow_schema(schema)
        self.state = WriterState.IDLE
        self.rows_written = 0
        self.row_groups_written = 0

        self._sink: Optional[pa.BufferOutputStream] = None
        self._writer: Optional[pq.ParquetWriter] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Deque[Future] = deque()
        self._buffer: List[Mapping[str, Any]] = []
        self._payload: Optional[bytes] = None

    # ==================================================
    # LIFECYCLE
    # ==================================================

    def open(self) -> "ParquetRecordWriter":
        if self.state == WriterState.CLOSED:
            raise UseAfterCloseError("writer is closed")
        if self.state != WriterState.IDLE:
            raise RuntimeError("writer is already open")

        self._sink = pa.BufferOutputStream()
        self._writer = pq.ParquetWriter(
            self._sink,
            self.arrow_schema,
            compression=self.compression or "none",
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.row_group_parallelism,
            thread_name_prefix="parquet-row-group",
        )
        self.state = WriterState.OPENED
        return self

    def close(self) -> bytes:
        """
        Flush buffered rows, write the footer and return the Parquet bytes.
        """
        if self.state == WriterState.CLOSED:
            raise UseAfterCloseError("writer is already closed")
        if self.state == WriterState.IDLE:
            self.open()

        try:
            if self._buffer:
                self._submit()
            self._drain(wait_all=True)
            self._writer.close()
        except BaseException:
            self._abort()
            raise

        self._executor.shutdown(wait=True)
        self._payload = self._sink.getvalue().to_pybytes()
        self._sink = None
        self._writer = None
        self.state = WriterState.CLOSED
        logger.debug(
            "Closed parquet writer: %d rows in %d row groups",
            self.rows_written, self.row_groups_written,
        )
        return self._payload

    def getvalue(self) -> bytes:
        if self._payload is None:
            raise RuntimeError("writer has not been closed successfully")
        return self._payload

    def __enter__(self) -> "ParquetRecordWriter":
        if self.state == WriterState.IDLE:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            if self.state != WriterState.CLOSED:
                self._abort()
            return False
        if self.state != WriterState.CLOSED:
            self.close()
        return False

    # ==================================================
    # WRITES
    # ==================================================

    def write(self, record: Mapping[str, Any]):
        if self.state == WriterState.CLOSED:
            raise UseAfterCloseError("write after close")
        if self.state != WriterState.OPENED:
            raise RuntimeError(f"writer is not open (state={self.state})")

        self._buffer.append(record)
        if len(self._buffer) >= self.row_group_size:
            try:
                self._submit()
            except BaseException:
                self._abort()
                raise

    def write_all(self, records: Iterable[Mapping[str, Any]]):
        for record in records:
            self.write(record)

    # ==================================================
    # ROW GROUP PIPELINE
    # ==================================================

    def _check_cancelled(self):
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

    def _submit(self):
        self._check_cancelled()

        rows, self._buffer = self._buffer, []
        first_row = self.rows_written
        self.rows_written += len(rows)

        future = self._executor.submit(
            _encode_row_group, rows, first_row, self.schema, self.arrow_schema,
        )
        self._pending.append(future)
        self._drain(wait_all=False)

    def _drain(self, wait_all: bool):
        """
        Append finished row groups in submission order.

        Blocks on the oldest chunk once more than row_group_parallelism
        chunks are in flight.
        """
        self.state = WriterState.FLUSHING
        while self._pending and (
            wait_all
            or self._pending[0].done()
            or len(self._pending) > self.row_group_parallelism
        ):
            table = self._pending.popleft().result()
            self._check_cancelled()
            self._writer.write_table(table, row_group_size=table.num_rows)
            self.row_groups_written += 1
        self.state = WriterState.OPENED

    def _abort(self):
        for future in self._pending:
            future.cancel()
        self._pending.clear()
        self._buffer = []
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        if self._writer is not None:
            try:
                self._writer.close()
            except (pa.ArrowException, OSError):
                logger.debug("Ignoring error while closing aborted writer", exc_info=True)
        self._sink = None
        self._writer = None
        self._payload = None
        self.state = WriterState.CLOSED


def write_records(
    records: Iterable[Mapping[str, Any]],
    schema: ParquetFieldSpec,
    row_group_parallelism: int = 1,
    row_group_size: int = DEFAULT_ROW_GROUP_SIZE,
    compression: Optional[str] = DEFAULT_COMPRESSION,
    cancel_token: Optional[CancellationToken] = None,
) -> bytes:
    """
    Encode records against a compiled schema into a Parquet byte buffer.
    """
    timer = RequestTimer()
    writer = ParquetRecordWriter(
        schema,
        row_group_parallelism=row_group_parallelism,
        row_group_size=row_group_size,
        compression=compression,
        cancel_token=cancel_token,
    )
    with writer:
        writer.write_all(records)

    payload = writer.getvalue()
    log_event("PARQUET_WRITE_COMPLETED", {
        "schema": schema.name,
        "rows": writer.rows_written,
        "row_groups": writer.row_groups_written,
        "bytes": len(payload),
        "parallelism": row_group_parallelism,
        "duration_seconds": timer.duration(),
    })
    return payload
