# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Base types for language plugins.

Defines the capability contract every language implements:

- extraction: symbol declarations, raw call references and import
  bindings from one parsed file
- scoping: how module paths, receivers and qualified references work,
  consumed by the call resolver

Plugins share no state; adding a language means adding a plugin and
registering it, the extractor, resolver and store stay untouched.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import (
    TYPE_CHECKING,
    Dict,
    FrozenSet,
    List,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)

from repo_context.models import CalleeKind, ImportBinding, Parameter

if TYPE_CHECKING:
    from tree_sitter import Node

# Placeholder receiver for calls on arbitrary expressions, e.g. make().run()
UNKNOWN_RECEIVER = "<expr>"


# ---------------------------------------------------------------------------
# Tree-sitter Query Types
# ---------------------------------------------------------------------------


@dataclass
class TreeSitterQueries:
    """Collection of tree-sitter queries for a language.

    Attributes:
        calls: Query for call expressions (captures the callee as @callee)
        imports: Query for import statements (captures the statement as @import)
    """

    calls: Optional[str] = None
    imports: Optional[str] = None


@dataclass
class DocCommentPattern:
    """How documentation comments written above a declaration look.

    Attributes:
        line_prefixes: Prefixes for doc comment lines (e.g., ["///"] for Rust)
        block_start: Start marker for block doc comments (e.g., "/**")
        block_end: End marker for block doc comments (e.g., "*/")
        skip_types: Node types that may sit between the comments and the
            declaration (e.g., attributes)
    """

    line_prefixes: List[str] = field(default_factory=list)
    block_start: Optional[str] = None
    block_end: Optional[str] = None
    skip_types: List[str] = field(default_factory=list)


@dataclass
class LanguageConfig:
    """Static description of a language."""

    name: str  # Canonical name (e.g., "python")
    display_name: str  # Human-readable name (e.g., "Python")
    aliases: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)  # .py, .pyi
    tree_sitter_language: Optional[str] = None  # tree-sitter grammar name
    scope_separator: str = "."  # joins qualified names (Outer.method, Type::method)
    doc_comment_pattern: Optional[DocCommentPattern] = None


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------


@dataclass
class ExtractedSymbol:
    """A declaration found in one file, before identifiers are assigned.

    start_byte/end_byte delimit the declaration node and are used to
    attribute call sites to their innermost enclosing symbol.
    """

    name: str
    kind: str
    qualified_name: str
    line_start: int
    line_end: int
    start_byte: int
    end_byte: int
    parent: Optional[str] = None
    parameters: List[Parameter] = field(default_factory=list)
    return_type: Optional[str] = None
    doc: Optional[str] = None
    calls: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Reference:
    """A raw call reference split into path segments."""

    raw: str
    parts: Tuple[str, ...]
    scoped: bool = False  # written with a namespace separator (Rust `::`)

    @property
    def name(self) -> str:
        return self.parts[-1]

    @property
    def qualifier(self) -> Tuple[str, ...]:
        return self.parts[:-1]

    @property
    def root(self) -> str:
        return self.parts[0]


@runtime_checkable
class LanguagePlugin(Protocol):
    """Protocol for language plugins."""

    @property
    def config(self) -> LanguageConfig: ...

    @property
    def tree_sitter_queries(self) -> TreeSitterQueries: ...

    @property
    def receiver_names(self) -> FrozenSet[str]: ...

    @property
    def container_kinds(self) -> FrozenSet[str]: ...

    def detect_from_file(self, path: Path) -> bool: ...

    def collect_symbols(self, root: "Node") -> List[ExtractedSymbol]: ...

    def call_reference(self, callee: "Node") -> Optional[str]: ...

    def import_bindings(
        self, statement: "Node", module_path: Tuple[str, ...], is_package: bool
    ) -> List[ImportBinding]: ...

    def module_path(self, rel_path: str) -> Tuple[Tuple[str, ...], bool]: ...

    def split_reference(self, raw: str) -> Reference: ...

    def expand_reference(
        self, ref: Reference, bindings: Dict[str, ImportBinding]
    ) -> Optional[Tuple[str, ...]]: ...

    def classify_unmatched(
        self, ref: Reference, expanded: Optional[Tuple[str, ...]]
    ) -> Optional[Tuple[CalleeKind, str]]: ...


class BaseLanguagePlugin(ABC):
    """Base class for language plugins with common functionality."""

    # Receivers that refer to the enclosing class/impl (self.x, Self::x)
    RECEIVER_NAMES: FrozenSet[str] = frozenset()
    # Symbol kinds that can own methods
    CONTAINER_KINDS: FrozenSet[str] = frozenset({"class"})

    def __init__(self):
        """Initialize plugin."""
        self._config: Optional[LanguageConfig] = None
        self._tree_sitter_queries: Optional[TreeSitterQueries] = None
        self._split_pattern: Optional[re.Pattern] = None

    @property
    def config(self) -> LanguageConfig:
        """Get language configuration."""
        if self._config is None:
            self._config = self._create_config()
        return self._config

    @property
    def tree_sitter_queries(self) -> TreeSitterQueries:
        """Get tree-sitter queries for this language."""
        if self._tree_sitter_queries is None:
            self._tree_sitter_queries = self._create_tree_sitter_queries()
        return self._tree_sitter_queries

    @property
    def receiver_names(self) -> FrozenSet[str]:
        return self.RECEIVER_NAMES

    @property
    def container_kinds(self) -> FrozenSet[str]:
        return self.CONTAINER_KINDS

    @abstractmethod
    def _create_config(self) -> LanguageConfig:
        """Create language configuration."""
        ...

    def _create_tree_sitter_queries(self) -> TreeSitterQueries:
        """Create tree-sitter queries for this language.

        Default returns empty queries (no call or import extraction).
        """
        return TreeSitterQueries()

    def detect_from_file(self, path: Path) -> bool:
        """Check if this language handles the file."""
        return path.suffix.lower() in [e.lower() for e in self.config.extensions]

    # Extraction hooks

    @abstractmethod
    def collect_symbols(self, root: "Node") -> List[ExtractedSymbol]:
        """Collect declarations in source order.

        Args:
            root: Root node of the parsed file

        Returns:
            Symbols with empty call lists
        """
        ...

    @abstractmethod
    def call_reference(self, callee: "Node") -> Optional[str]:
        """Reduce a callee expression to a raw reference path, or None to skip it."""
        ...

    @abstractmethod
    def import_bindings(
        self, statement: "Node", module_path: Tuple[str, ...], is_package: bool
    ) -> List[ImportBinding]:
        """Names bound by one import statement captured by the imports query."""
        ...

    # Scoping hooks

    @abstractmethod
    def module_path(self, rel_path: str) -> Tuple[Tuple[str, ...], bool]:
        """Map a repository-relative file path to its module path.

        Returns:
            (module segments, whether the file is a package/module root)
        """
        ...

    def split_reference(self, raw: str) -> Reference:
        """Split a raw reference on the language's path separators."""
        separators = [self.config.scope_separator]
        if "." not in separators:
            separators.append(".")
        if self._split_pattern is None:
            self._split_pattern = re.compile("|".join(re.escape(s) for s in separators))
        parts = tuple(p for p in self._split_pattern.split(raw) if p)
        scoped = self.config.scope_separator != "." and self.config.scope_separator in raw
        return Reference(raw=raw, parts=parts or (raw,), scoped=scoped)

    def expand_reference(
        self, ref: Reference, bindings: Dict[str, ImportBinding]
    ) -> Optional[Tuple[str, ...]]:
        """Expand a reference whose root is bound by an import to a full path."""
        if ref.root in self.receiver_names:
            return None
        binding = bindings.get(ref.root)
        if binding is None:
            return None
        return tuple(binding.path) + ref.parts[1:]

    @abstractmethod
    def classify_unmatched(
        self, ref: Reference, expanded: Optional[Tuple[str, ...]]
    ) -> Optional[Tuple[CalleeKind, str]]:
        """Classify a reference with no repository match as builtin or external.

        Args:
            ref: The reference
            expanded: Full namespace path if the reference is namespace-qualified

        Returns:
            (BUILTIN or EXTERNAL, target) or None when nothing applies
        """
        ...

    def leading_doc_comment(self, item: "Node") -> Optional[str]:
        """Collect the doc comments directly above a declaration.

        Driven by the config's DocCommentPattern; languages without one
        (docstrings inside the body) get None.
        """
        pattern = self.config.doc_comment_pattern
        if pattern is None:
            return None

        lines: List[str] = []
        sibling = item.prev_named_sibling
        while sibling is not None:
            if sibling.type in pattern.skip_types:
                sibling = sibling.prev_named_sibling
                continue
            text = (node_text(sibling) or "").strip()
            line = _doc_line(text, pattern)
            if line is None:
                line = _doc_block(text, pattern)
            if line is None:
                break
            lines.append(line)
            sibling = sibling.prev_named_sibling

        doc = "\n".join(reversed(lines)).strip()
        return doc or None


def _doc_line(text: str, pattern: DocCommentPattern) -> Optional[str]:
    for prefix in pattern.line_prefixes:
        # A repeated final marker character (////) is a plain comment
        if text.startswith(prefix) and not text.startswith(prefix + prefix[-1]):
            line = text[len(prefix) :]
            return line[1:] if line.startswith(" ") else line
    return None


def _doc_block(text: str, pattern: DocCommentPattern) -> Optional[str]:
    start, end = pattern.block_start, pattern.block_end
    if not start or not end or not text.startswith(start):
        return None
    if text.startswith(start + start[-1]) or text == start[:-1] + end:
        return None
    body = text[len(start) : -len(end)] if text.endswith(end) else text[len(start) :]
    block = [re.sub(r"^\s*\*? ?", "", line) for line in body.splitlines()]
    return "\n".join(block).strip()


def posix_parts(rel_path: str) -> Tuple[str, ...]:
    """Path segments of a repository-relative path with the suffix removed."""
    path = PurePosixPath(rel_path)
    return tuple(path.parent.parts) + (path.stem,) if str(path.parent) != "." else (path.stem,)


def node_text(node: Optional["Node"]) -> Optional[str]:
    """Decode a node's source text."""
    if node is None or node.text is None:
        return None
    return node.text.decode("utf-8", errors="replace")


def node_lines(node: "Node") -> Tuple[int, int]:
    """1-indexed inclusive line range of a node."""
    return node.start_point[0] + 1, node.end_point[0] + 1
