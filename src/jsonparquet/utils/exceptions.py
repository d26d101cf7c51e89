from typing import Optional


class JsonParquetError(Exception):
    """
    Base exception for all JSON Schema / Parquet codec errors.

    Every error carries the dotted field path it relates to so that
    schema and record problems can be traced back to a single column.
    """

    def __init__(self, path: Optional[str], message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


# --------------------------------------------------
# Compile-time errors
# --------------------------------------------------
class SchemaCompileError(JsonParquetError):
    """
    Raised when a JSON Schema node cannot be compiled into a Parquet field.
    """
    pass


class SchemaResolutionError(SchemaCompileError):
    """
    Raised when a $ref points at a missing definition or a non-object value.
    """

    def __init__(self, path: Optional[str], ref: str, message: str):
        self.ref = ref
        super().__init__(path, f"cannot resolve {ref!r}: {message}")


class CyclicSchemaError(SchemaCompileError):
    """
    Raised when $defs reference themselves, directly or transitively.
    """

    def __init__(self, path: Optional[str], ref: str):
        self.ref = ref
        super().__init__(path, f"cyclic reference through {ref!r}")


class UnsupportedTypeError(SchemaCompileError):
    """
    Signals a type/format combination without a mapping.

    Never raised by the compiler: the field falls back to UTF8 text and
    this error is attached to a WARNING diagnostic instead.
    """

    def __init__(self, path: Optional[str], type_name: str):
        self.type_name = type_name
        super().__init__(
            path,
            f"type {type_name!r} has no Parquet mapping; values are stored as UTF8 text",
        )


# --------------------------------------------------
# Codec errors
# --------------------------------------------------
class TypeMismatchError(JsonParquetError):
    """
    Raised when a record value cannot be converted to its column type.
    """
    pass


class CorruptDataError(JsonParquetError):
    """
    Raised when a Parquet buffer is truncated or malformed.
    """
    pass


class UseAfterCloseError(JsonParquetError):
    """
    Programming error: a writer or reader was used after it was closed.
    """

    def __init__(self, message: str):
        super().__init__(None, message)


class OperationCancelledError(JsonParquetError):
    """
    Raised when a cancellation token fires between row groups or rows.
    """

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(None, message)


class RecordParseError(JsonParquetError):
    """
    Raised when JSON record text cannot be parsed into objects.
    """
    pass
