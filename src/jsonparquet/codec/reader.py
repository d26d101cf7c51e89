"""
Parquet read path for JSON records.

The footer is parsed when the reader is constructed, so a truncated or
foreign buffer fails fast with CorruptDataError before anything is
yielded. Rows are then pulled lazily, one record batch at a time, in file
order. Readers are single-pass: iterate a second time and you get
UseAfterCloseError; build a new reader to re-scan.

Without a target schema the Arrow schema embedded in the file is turned
back into a ParquetFieldSpec tree. With one, only its top-level columns
are read and each batch is cast to the target column types.
"""

import logging
from typing import Any, Dict, Iterator, Optional, Union

import pyarrow as pa
import pyarrow.parquet as pq

from jsonparquet.canonical.field_spec import ParquetFieldSpec
from jsonparquet.codec.cancellation import CancellationToken
from jsonparquet.codec.coercion import decode_record
from jsonparquet.observability.logger import log_event
from jsonparquet.outputs.arrow_schema import from_arrow_schema, to_arrow_schema
from jsonparquet.utils.exceptions import (
    CorruptDataError,
    SchemaCompileError,
    TypeMismatchError,
    UseAfterCloseError,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1024

BufferLike = Union[bytes, bytearray, memoryview]


class ParquetRecordReader:
    """
    Lazy, single-pass record reader over an in-memory Parquet buffer.

    Example:
        >>> reader = ParquetRecordReader(payload)
        >>> for record in reader:
        ...     print(record)
    """

    def __init__(
        self,
        buffer: BufferLike,
        schema: Optional[ParquetFieldSpec] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.batch_size = batch_size
        self.cancel_token = cancel_token
        self._consumed = False

        try:
            self._file = pq.ParquetFile(pa.BufferReader(bytes(buffer)))
            embedded = self._file.schema_arrow
        except (pa.ArrowException, OSError) as exc:
            raise CorruptDataError(None, f"not a readable Parquet buffer: {exc}") from exc

        self.embedded_schema = from_arrow_schema(embedded, name=schema.name if schema else "root")
        self.schema = schema or self.embedded_schema

        self._columns = None
        self._target_schema = None
        if schema is not None:
            available = set(embedded.names)
            for child in schema.children:
                if child.name not in available:
                    raise TypeMismatchError(
                        f"{schema.name}.{child.name}",
                        "column is not present in the Parquet buffer",
                    )
            try:
                self._target_schema = to_arrow_schema(schema)
            except SchemaCompileError as exc:
                raise TypeMismatchError(schema.name, exc.message) from exc
            self._columns = [child.name for child in schema.children]

    @property
    def num_rows(self) -> int:
        return self._file.metadata.num_rows

    @property
    def num_row_groups(self) -> int:
        return self._file.metadata.num_row_groups

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        if self._consumed:
            raise UseAfterCloseError("reader has already been consumed; create a new reader to re-scan")
        self._consumed = True
        log_event("PARQUET_READ_STARTED", {
            "schema": self.schema.name,
            "rows": self.num_rows,
            "row_groups": self.num_row_groups,
            "projected": self._columns is not None,
        })
        return self._iter_records()

    def _cast(self, batch: pa.RecordBatch) -> pa.Table:
        table = pa.Table.from_batches([batch])
        if self._target_schema is None:
            return table
        try:
            return table.select(self._columns).cast(self._target_schema)
        except (pa.ArrowInvalid, pa.ArrowTypeError, pa.ArrowNotImplementedError, ValueError) as exc:
            raise TypeMismatchError(self.schema.name, f"cannot read buffer with target schema: {exc}") from exc

    def _iter_records(self) -> Iterator[Dict[str, Any]]:
        batches = self._file.iter_batches(batch_size=self.batch_size, columns=self._columns)
        while True:
            try:
                batch = next(batches, None)
            except (pa.ArrowException, OSError) as exc:
                raise CorruptDataError(None, f"failed to decode Parquet data: {exc}") from exc
            if batch is None:
                return

            for row in self._cast(batch).to_pylist():
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled()
                yield decode_record(row, self.schema)


def read_records(
    buffer: BufferLike,
    schema: Optional[ParquetFieldSpec] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    cancel_token: Optional[CancellationToken] = None,
) -> Iterator[Dict[str, Any]]:
    """
    Decode a Parquet buffer into a lazy sequence of records.
    """
    return iter(ParquetRecordReader(buffer, schema, batch_size=batch_size, cancel_token=cancel_token))
