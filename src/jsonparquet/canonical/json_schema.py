from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from jsonparquet.utils.exceptions import SchemaCompileError, SchemaResolutionError

# Closed set of JSON values: null, bool, number, string, array, object
JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]


@dataclass(frozen=True)
class JSONSchemaNode:
    """
    One node of an input JSON Schema document.

    Only the draft-agnostic subset is modelled: type, properties, required,
    items, additionalProperties, format, description, enum and $ref.
    """
    type: Tuple[str, ...] = ()
    properties: Optional[Tuple[Tuple[str, "JSONSchemaNode"], ...]] = None
    required: FrozenSet[str] = frozenset()
    items: Optional["JSONSchemaNode"] = None
    additional_properties: Optional["JSONSchemaNode"] = None
    format: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[Tuple[JsonValue, ...]] = None
    ref: Optional[str] = None
    # Shape error found while parsing this node; raised when it is compiled
    error: Optional[SchemaCompileError] = None

    @property
    def is_typed(self) -> bool:
        return bool(
            self.type
            or self.properties is not None
            or self.items is not None
            or self.additional_properties is not None
        )


def _type_names(raw: Any, path: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, list) and all(isinstance(t, str) for t in raw):
        # Ordered set: first occurrence wins
        return tuple(dict.fromkeys(raw))
    raise SchemaCompileError(path, f"'type' must be a string or a list of strings, got {raw!r}")


def _optional_str(raw: Mapping[str, Any], key: str, path: str) -> Optional[str]:
    value = raw.get(key)
    if value is None or isinstance(value, str):
        return value
    raise SchemaCompileError(path, f"'{key}' must be a string, got {value!r}")


def _child_node(raw: Any, path: str) -> JSONSchemaNode:
    try:
        return node_from_dict(raw, path)
    except SchemaCompileError as exc:
        return JSONSchemaNode(error=exc)


def node_from_dict(raw: Any, path: str = "root") -> JSONSchemaNode:
    """
    Build a JSONSchemaNode tree from a decoded JSON object.

    Problems in the node itself raise SchemaCompileError. Problems below
    it are kept on the offending child (JSONSchemaNode.error) so the
    compiler can contain them to that field.
    """
    if not isinstance(raw, Mapping):
        raise SchemaCompileError(path, f"schema node must be an object, got {type(raw).__name__}")

    properties = None
    raw_properties = raw.get("properties")
    if raw_properties is not None:
        if not isinstance(raw_properties, Mapping):
            raise SchemaCompileError(path, "'properties' must be an object")
        properties = tuple(
            (name, _child_node(child, f"{path}.{name}"))
            for name, child in raw_properties.items()
        )

    raw_required = raw.get("required", [])
    if not isinstance(raw_required, list) or not all(isinstance(r, str) for r in raw_required):
        raise SchemaCompileError(path, "'required' must be a list of property names")

    items = None
    raw_items = raw.get("items")
    if raw_items is not None:
        if not isinstance(raw_items, Mapping):
            raise SchemaCompileError(path, "tuple-form 'items' is not supported")
        items = _child_node(raw_items, f"{path}.element")

    # Boolean additionalProperties only constrains validation
    additional = None
    raw_additional = raw.get("additionalProperties")
    if isinstance(raw_additional, Mapping):
        additional = _child_node(raw_additional, f"{path}.value")

    enum = raw.get("enum")
    if enum is not None:
        if not isinstance(enum, list):
            raise SchemaCompileError(path, "'enum' must be a list")
        enum = tuple(enum)

    return JSONSchemaNode(
        type=_type_names(raw.get("type"), path),
        properties=properties,
        required=frozenset(raw_required),
        items=items,
        additional_properties=additional,
        format=_optional_str(raw, "format", path),
        description=_optional_str(raw, "description", path),
        enum=enum,
        ref=_optional_str(raw, "$ref", path),
    )


class SchemaDefinitionTable:
    """
    Read-only view over a document's $defs object.

    Definitions may be nested in namespaces ("#/$defs/geo/Point"); lookup
    walks one segment at a time and only builds nodes on demand, so the
    table itself is never mutated after construction.
    """

    def __init__(self, definitions: Optional[Mapping[str, Any]] = None):
        if definitions is not None and not isinstance(definitions, Mapping):
            raise SchemaCompileError("$defs", "'$defs' must be an object")
        self._definitions = MappingProxyType(dict(definitions or {}))

    @classmethod
    def empty(cls) -> "SchemaDefinitionTable":
        return cls()

    def __contains__(self, name: str) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def lookup(self, segments: Sequence[str], ref: str, path: str) -> JSONSchemaNode:
        current: Any = self._definitions
        for depth, segment in enumerate(segments):
            if segment not in current:
                walked = "/".join(segments[: depth + 1])
                raise SchemaResolutionError(path, ref, f"no definition at '{walked}'")
            current = current[segment]
            if not isinstance(current, Mapping):
                walked = "/".join(segments[: depth + 1])
                raise SchemaResolutionError(path, ref, f"'{walked}' is not an object")
        return node_from_dict(current, path)
