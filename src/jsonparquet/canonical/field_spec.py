from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


class PhysicalType:
    """
    Parquet physical types plus the nested LIST / MAP / GROUP kinds.
    """
    BYTE_ARRAY = "BYTE_ARRAY"
    INT32 = "INT32"
    INT64 = "INT64"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    LIST = "LIST"
    MAP = "MAP"
    GROUP = "GROUP"

    NESTED = {LIST, MAP, GROUP}
    INTEGER = {INT32, INT64}
    FLOATING = {FLOAT, DOUBLE}

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in {
            cls.BYTE_ARRAY, cls.INT32, cls.INT64, cls.FLOAT,
            cls.DOUBLE, cls.BOOLEAN, cls.LIST, cls.MAP, cls.GROUP,
        }


class LogicalAnnotation:
    """
    Refinements of BYTE_ARRAY. DATE and DATE_TIME values are stored as
    UTF8 text; the tag only records the format for documentation.
    """
    UTF8 = "UTF8"
    DATE = "DATE"
    DATE_TIME = "DATE_TIME"

    TEXT = {UTF8, DATE, DATE_TIME}

    # JSON Schema "format" keyword <-> annotation
    BY_FORMAT = {"date": DATE, "date-time": DATE_TIME}
    FORMATS = {DATE: "date", DATE_TIME: "date-time"}


class Repetition:
    REQUIRED = "REQUIRED"
    OPTIONAL = "OPTIONAL"
    REPEATED = "REPEATED"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in {cls.REQUIRED, cls.OPTIONAL, cls.REPEATED}


@dataclass(frozen=True)
class FieldMetadata:
    """
    Informational metadata carried with a field. Does not affect encoding.

    fallback_from names the original JSON Schema type when the field was
    lowered to UTF8 text because no mapping exists (lossy field).
    """
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    fallback_from: Optional[str] = None

    @property
    def is_lossy(self) -> bool:
        return self.fallback_from is not None


@dataclass(frozen=True)
class ParquetFieldSpec:
    """
    One node of a compiled Parquet schema tree.

    Children are only populated for LIST (single "element"), MAP ("key",
    "value") and GROUP (one per property, in declaration order).
    """
    name: str
    physical_type: str
    repetition: str
    logical_annotation: Optional[str] = None
    children: Tuple["ParquetFieldSpec", ...] = ()
    metadata: FieldMetadata = field(default_factory=FieldMetadata)

    # Record key when it differs from the column name ("inname" in tags)
    in_name: Optional[str] = None

    @property
    def record_key(self) -> str:
        return self.in_name or self.name

    @property
    def is_nullable(self) -> bool:
        return self.repetition == Repetition.OPTIONAL

    @property
    def is_nested(self) -> bool:
        return self.physical_type in PhysicalType.NESTED

    @property
    def element(self) -> "ParquetFieldSpec":
        if self.physical_type != PhysicalType.LIST:
            raise AttributeError(f"{self.name} is not a LIST field")
        return self.children[0]

    @property
    def key(self) -> "ParquetFieldSpec":
        if self.physical_type != PhysicalType.MAP:
            raise AttributeError(f"{self.name} is not a MAP field")
        return self.children[0]

    @property
    def value(self) -> "ParquetFieldSpec":
        if self.physical_type != PhysicalType.MAP:
            raise AttributeError(f"{self.name} is not a MAP field")
        return self.children[1]

    def child(self, name: str) -> "ParquetFieldSpec":
        for candidate in self.children:
            if candidate.name == name:
                return candidate
        raise KeyError(name)


def text_placeholder(
    name: str,
    fallback_from: str,
    description: Optional[str] = None,
) -> ParquetFieldSpec:
    """
    Opaque OPTIONAL UTF8 column used for fields that could not be compiled.
    """
    return ParquetFieldSpec(
        name=name,
        physical_type=PhysicalType.BYTE_ARRAY,
        logical_annotation=LogicalAnnotation.UTF8,
        repetition=Repetition.OPTIONAL,
        metadata=FieldMetadata(description=description, fallback_from=fallback_from),
    )
