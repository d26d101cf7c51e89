import logging
from typing import FrozenSet, NamedTuple, Optional, Tuple

from jsonparquet.canonical.json_schema import JSONSchemaNode, SchemaDefinitionTable
from jsonparquet.utils.exceptions import CyclicSchemaError

logger = logging.getLogger(__name__)

DEFS_PREFIX = "#/$defs/"


class ResolvedNode(NamedTuple):
    node: JSONSchemaNode
    # Definition paths followed on the way down to this node
    visited: FrozenSet[str]


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def parse_ref(ref: str) -> Optional[Tuple[str, ...]]:
    """
    Split a "#/$defs/<seg>[/<seg>...]" pointer into definition segments.

    Returns None for every other syntax (external URLs, "#/definitions/...",
    array indices): those refs are explicitly not resolved.
    """
    if not ref.startswith(DEFS_PREFIX):
        return None

    segments = tuple(_unescape(s) for s in ref[len(DEFS_PREFIX):].split("/"))
    if not all(segments) or any(s.isdigit() for s in segments):
        return None
    return segments


def resolve(
    node: JSONSchemaNode,
    table: SchemaDefinitionTable,
    path: str,
    visited: FrozenSet[str] = frozenset(),
) -> ResolvedNode:
    """
    Follow $ref pointers on node until a concrete definition is reached.

    Chained refs are followed against the top-level table. A definition
    path that was already followed on the current branch means the schema
    is recursive, which a Parquet tree cannot represent.
    """
    current = node
    while current.ref is not None:
        segments = parse_ref(current.ref)
        if segments is None:
            logger.debug("Unsupported $ref syntax at %s: %s", path, current.ref)
            return ResolvedNode(current, visited)

        definition_path = "/".join(segments)
        if definition_path in visited:
            raise CyclicSchemaError(path, current.ref)

        visited = visited | {definition_path}
        current = table.lookup(segments, ref=current.ref, path=path)

    return ResolvedNode(current, visited)
