"""
Structured view over a YAML configuration document.

The original text is kept verbatim. PyYAML composes it into a node tree
whose marks carry character offsets into that text, so a single value can be
located structurally and replaced without re-rendering the rest of the file.
"""
import difflib
import itertools
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

import yaml

from ..core.models import PatchTarget
from ..core.exceptions import TargetNotFound, MalformedDocument


logger = logging.getLogger(__name__)


def is_alias(key_node: yaml.Node, value_node: yaml.Node) -> bool:
    """
    True when ``value_node`` was reached through an alias.

    An alias resolves to the anchored node, which always sits earlier in the
    text than the key that refers to it.
    """
    return value_node.start_mark.index < key_node.end_mark.index


def _walk_pairs(node: yaml.Node, visited: set) -> Iterator[Tuple[yaml.Node, yaml.Node]]:
    """Yield every mapping ``(key, value)`` pair under ``node`` in text order"""
    if id(node) in visited:
        return
    visited.add(id(node))

    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            yield key_node, value_node
            if not is_alias(key_node, value_node):
                yield from _walk_pairs(value_node, visited)
    elif isinstance(node, yaml.SequenceNode):
        for item in node.value:
            yield from _walk_pairs(item, visited)


def _children(node: yaml.Node) -> Iterator[yaml.Node]:
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            yield key_node
            yield value_node
    elif isinstance(node, yaml.SequenceNode):
        yield from node.value


def _mark_subtree(node: yaml.Node, marked: set) -> None:
    if id(node) in marked:
        return
    marked.add(id(node))
    for child in _children(node):
        _mark_subtree(child, marked)


def shared_node_ids(roots: List[yaml.Node]) -> set:
    """
    Ids of nodes reachable through more than one path.

    A node reached a second time was referenced by an alias; everything
    below it is shared as well.
    """
    seen = set()
    shared = set()

    def visit(node):
        if id(node) in seen:
            _mark_subtree(node, shared)
            return
        seen.add(id(node))
        for child in _children(node):
            visit(child)

    for root in roots:
        visit(root)
    return shared


@dataclass(frozen=True)
class Section:
    """One occurrence of ``name: <mapping>`` in a document"""
    name: str
    occurrence: int
    key_node: yaml.ScalarNode
    value_node: yaml.MappingNode
    document_index: int

    @property
    def line(self) -> int:
        """1-based line of the section key"""
        return self.key_node.start_mark.line + 1

    @property
    def aliased(self) -> bool:
        return is_alias(self.key_node, self.value_node)

    def fields(self, source: Optional[str] = None) -> Dict[str, Tuple[yaml.Node, yaml.Node]]:
        """
        Direct fields of the section, keyed by name.

        Raises:
            MalformedDocument: If a field name repeats within the section
        """
        fields = {}
        for key_node, value_node in self.value_node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                continue
            if key_node.value in fields:
                raise MalformedDocument(
                    f"duplicate field '{key_node.value}' in section "
                    f"'{self.name}' at line {key_node.start_mark.line + 1}",
                    source
                )
            fields[key_node.value] = (key_node, value_node)
        return fields


class StructuredDocument:
    """Immutable YAML document: verbatim text plus its composed node tree"""

    def __init__(self, text: str, source: Optional[str] = None):
        """
        Initialize document.

        Args:
            text: Full document text
            source: Where the text came from, used in error messages
        """
        self._text = text
        self.source = source
        self._roots: Optional[List[yaml.Node]] = None
        self._shared: Optional[set] = None

    @classmethod
    def from_text(cls, text: str, source: Optional[str] = None) -> 'StructuredDocument':
        return cls(text, source)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'StructuredDocument':
        """Read a document from disk, keeping line endings as they are"""
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise MalformedDocument(f"not valid UTF-8: {e}", str(path)) from e
        return cls(text, source=str(path))

    @property
    def text(self) -> str:
        return self._text

    def __eq__(self, other) -> bool:
        if not isinstance(other, StructuredDocument):
            return NotImplemented
        return self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __repr__(self) -> str:
        return f"StructuredDocument(source={self.source!r}, length={len(self._text)})"

    @property
    def roots(self) -> List[yaml.Node]:
        """
        Composed root node of every YAML document in the text.

        Raises:
            MalformedDocument: If the text is not valid YAML
        """
        if self._roots is None:
            try:
                roots = list(yaml.compose_all(self._text, Loader=yaml.SafeLoader))
            except yaml.YAMLError as e:
                raise MalformedDocument(f"cannot parse YAML: {e}", self.source) from e
            self._roots = [root for root in roots if root is not None]
        return self._roots

    def is_shared(self, node: yaml.Node) -> bool:
        """True when ``node`` is also reachable through an alias elsewhere"""
        if self._shared is None:
            self._shared = shared_node_ids(self.roots)
        return id(node) in self._shared

    def sections(self, name: str) -> Iterator[Section]:
        """
        Yield sections called ``name`` in document order.

        A section is a mapping entry whose key is the scalar ``name`` and
        whose value is a mapping. A section is yielded when its key is
        reached, before anything nested inside it.
        """
        counter = itertools.count()
        for document_index, root in enumerate(self.roots):
            for key_node, value_node in _walk_pairs(root, set()):
                if (
                    isinstance(key_node, yaml.ScalarNode)
                    and key_node.value == name
                    and isinstance(value_node, yaml.MappingNode)
                ):
                    yield Section(name, next(counter), key_node, value_node, document_index)

    def find_section(self, name: str, occurrence: int = 0) -> Section:
        """
        Resolve one section occurrence, stopping the scan once it is reached.

        Raises:
            TargetNotFound: If fewer than ``occurrence + 1`` sections exist
            MalformedDocument: If the text is not valid YAML
        """
        for section in self.sections(name):
            if section.occurrence == occurrence:
                return section
        if occurrence == 0:
            raise TargetNotFound(f"no '{name}' section found", self.source)
        raise TargetNotFound(
            f"section '{name}' occurrence {occurrence} not found", self.source
        )

    def get(self, target: PatchTarget) -> str:
        """
        Current scalar value at ``target``.

        Raises:
            TargetNotFound: If the section or field does not exist
            MalformedDocument: If the value is not a scalar
        """
        section = self.find_section(target.section, target.occurrence)
        _, value_node = self.resolve_field(section, target.field)
        if not isinstance(value_node, yaml.ScalarNode):
            raise MalformedDocument(f"{target.describe()} is not a scalar", self.source)
        return value_node.value

    def resolve_field(self, section: Section, field_name: str) -> Tuple[yaml.Node, yaml.Node]:
        """
        Key and value nodes of a direct field of ``section``.

        Raises:
            TargetNotFound: If the section has no such field
            MalformedDocument: If the section repeats a field name
        """
        fields = section.fields(self.source)
        if field_name not in fields:
            raise TargetNotFound(
                f"field '{field_name}' missing from section "
                f"'{section.name}' at line {section.line}",
                self.source
            )
        return fields[field_name]

    def replace_spans(self, edits: List[Tuple[int, int, str]]) -> 'StructuredDocument':
        """
        Return a new document with character spans replaced.

        Args:
            edits: Non-overlapping ``(start, end, replacement)`` triples
        """
        if not edits:
            return self
        pieces = []
        cursor = 0
        for start, end, replacement in sorted(edits):
            if start < cursor:
                raise ValueError(f"overlapping edit at offset {start}")
            pieces.append(self._text[cursor:start])
            pieces.append(replacement)
            cursor = end
        pieces.append(self._text[cursor:])
        return StructuredDocument(''.join(pieces), self.source)

    def diff(self, other: 'StructuredDocument') -> str:
        """Unified diff from this document to ``other``"""
        name = self.source or 'document'
        return ''.join(difflib.unified_diff(
            self._text.splitlines(keepends=True),
            other.text.splitlines(keepends=True),
            fromfile=f"a/{name}",
            tofile=f"b/{name}",
        ))

    def write_to(self, path: Union[str, Path]) -> None:
        """
        Write the document atomically: temporary file in the same
        directory, then rename over ``path``.
        """
        path = Path(path)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
                f.write(self._text)
            if path.exists():
                os.chmod(tmp_path, path.stat().st_mode & 0o7777)
            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(self._text)} characters to {path}")
