"""
Format-agnostic manifest document tree.

A Document is one of MappingNode, SequenceNode, ScalarNode or NullNode.
Nodes are immutable: set_at_path returns a new root that replaces only the
addressed leaf and its ancestors, and shares every sibling subtree with the
original.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Tuple, Union

from .errors import EmptyDocumentError, InvalidPathError, MissingKeyError, TypeMismatchError

PathExpression = Tuple[str, ...]


@dataclass(frozen=True)
class NullNode:
    kind = 'null'


@dataclass(frozen=True)
class ScalarNode:
    value: Any
    kind = 'scalar'


@dataclass(frozen=True)
class SequenceNode:
    items: Tuple['Document', ...] = ()
    kind = 'sequence'

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator['Document']:
        return iter(self.items)


@dataclass(frozen=True)
class MappingNode:
    """Ordered mapping of unique keys to child nodes."""

    entries: Tuple[Tuple[Any, 'Document'], ...] = ()
    kind = 'mapping'

    def __contains__(self, key) -> bool:
        return any(existing == key for existing, _ in self.entries)

    def __getitem__(self, key) -> 'Document':
        for existing, node in self.entries:
            if existing == key:
                return node
        raise KeyError(key)

    def __len__(self) -> int:
        return len(self.entries)

    def keys(self) -> Tuple[Any, ...]:
        return tuple(key for key, _ in self.entries)

    def replace(self, key, node: 'Document') -> 'MappingNode':
        """Return a copy with an existing key bound to a new node."""
        if key not in self:
            raise KeyError(key)
        return MappingNode(tuple(
            (existing, node if existing == key else child) for existing, child in self.entries
        ))

    def set(self, key, node: 'Document') -> 'MappingNode':
        """Return a copy with key bound to node, appending the key if new."""
        if key in self:
            return self.replace(key, node)
        return MappingNode(self.entries + ((key, node),))


Document = Union[MappingNode, SequenceNode, ScalarNode, NullNode]

NULL = NullNode()


def from_native(value: Any) -> Document:
    """Build a Document from dicts, lists and scalars as loaded by PyYAML."""
    if value is None:
        return NULL
    if isinstance(value, dict):
        return MappingNode(tuple((key, from_native(child)) for key, child in value.items()))
    if isinstance(value, (list, tuple)):
        return SequenceNode(tuple(from_native(child) for child in value))
    return ScalarNode(value)


def to_native(doc: Document) -> Any:
    """Convert a Document back into plain dicts, lists and scalars."""
    if isinstance(doc, MappingNode):
        return {key: to_native(child) for key, child in doc.entries}
    if isinstance(doc, SequenceNode):
        return [to_native(child) for child in doc.items]
    if isinstance(doc, ScalarNode):
        return doc.value
    return None


def parse_path(path: Union[str, PathExpression]) -> PathExpression:
    """
    Split a dotted path such as 'image.tag' into its segments.

    Raises:
        InvalidPathError: If the path is empty or has an empty segment
    """
    segments = tuple(path.split('.')) if isinstance(path, str) else tuple(path)
    if not segments or any(not isinstance(s, str) or not s for s in segments):
        raise InvalidPathError(path if isinstance(path, str) else '.'.join(map(str, segments)))
    return segments


def _descend(node: Document, segment: str, dotted: str) -> Document:
    if not isinstance(node, MappingNode):
        raise TypeMismatchError(segment, dotted, node.kind)
    if segment not in node:
        raise MissingKeyError(segment, dotted)
    return node[segment]


def get_at_path(doc: Document, path: Union[str, PathExpression]) -> Any:
    """Return the native value stored at a dotted path."""
    segments = parse_path(path)
    dotted = '.'.join(segments)
    if isinstance(doc, NullNode):
        raise EmptyDocumentError(dotted)
    node = doc
    for segment in segments:
        node = _descend(node, segment, dotted)
    return to_native(node)


def set_at_path(doc: Document, path: Union[str, PathExpression], value: Any) -> Document:
    """
    Replace the value of an existing key addressed by a dotted path.

    Every key on the path, the last one included, must already exist; the
    document's structure is never extended.

    Args:
        doc: Root of the document
        path: Dotted path string or PathExpression
        value: New scalar (a ScalarNode or a plain value)

    Returns:
        Document: New root; doc itself is left untouched

    Raises:
        EmptyDocumentError: If the document is empty
        TypeMismatchError: If a node on the path is not a mapping
        MissingKeyError: If a key on the path does not exist
    """
    segments = parse_path(path)
    dotted = '.'.join(segments)
    if isinstance(doc, NullNode):
        raise EmptyDocumentError(dotted)
    leaf = value if isinstance(value, ScalarNode) else ScalarNode(value)
    return _replace(doc, segments, leaf, dotted)


def _replace(node: Document, segments: PathExpression, leaf: ScalarNode, dotted: str) -> Document:
    segment = segments[0]
    child = _descend(node, segment, dotted)
    if len(segments) == 1:
        return node.replace(segment, leaf)
    return node.replace(segment, _replace(child, segments[1:], leaf, dotted))
