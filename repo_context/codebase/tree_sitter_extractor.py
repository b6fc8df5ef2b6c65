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

"""Registry-based tree-sitter extraction of one file.

All language-specific logic lives in the LanguagePlugin classes; this
module only parses, runs the plugin's queries and attributes call sites
to their innermost enclosing symbol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from repo_context.codebase.tree_sitter_manager import create_parser, run_query
from repo_context.errors import ParseError
from repo_context.languages.base import ExtractedSymbol, LanguagePlugin
from repo_context.languages.registry import LanguageRegistry
from repo_context.models import ImportBinding

if TYPE_CHECKING:
    from tree_sitter import Node, Parser

logger = logging.getLogger(__name__)


def count_lines(content: bytes) -> int:
    """Number of lines, counting a final line without a trailing newline."""
    if not content:
        return 0
    return content.count(b"\n") + (0 if content.endswith(b"\n") else 1)


@dataclass
class ParsedFile:
    """Extraction result for one file. Picklable, so it can cross process boundaries."""

    path: str
    language: str
    size: int
    lines: int
    symbols: List[ExtractedSymbol] = field(default_factory=list)
    imports: List[ImportBinding] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failed(cls, path: str, language: str, content: bytes, reason: str) -> "ParsedFile":
        """Record for a file that could not be parsed: no symbols, error marker set."""
        return cls(
            path=path,
            language=language,
            size=len(content),
            lines=count_lines(content),
            error=reason,
        )


class TreeSitterExtractor:
    """Unified tree-sitter extraction using a language registry.

    This class avoids `if language == "python"` branching by delegating
    declaration, call and import syntax to the registered plugins.
    """

    def __init__(self, registry: LanguageRegistry, strict_syntax: bool = True):
        """Initialize extractor.

        Args:
            registry: Language registry used to route files to plugins
            strict_syntax: Treat trees containing syntax errors as parse failures
        """
        self.registry = registry
        self.strict_syntax = strict_syntax
        self._parsers: Dict[str, "Parser"] = {}

    def _get_parser(self, plugin: LanguagePlugin) -> "Parser":
        language = plugin.config.tree_sitter_language or plugin.config.name
        if language not in self._parsers:
            self._parsers[language] = create_parser(language)
        return self._parsers[language]

    def extract(self, path: str, content: bytes, language: str) -> ParsedFile:
        """Extract symbols, raw calls and imports from one file.

        Args:
            path: Repository-relative path (forward slashes)
            content: Raw file bytes
            language: Registered language name

        Returns:
            ParsedFile with symbols in declaration order

        Raises:
            ParseError: If the file has syntax errors and strict_syntax is set
        """
        plugin = self.registry.get(language)
        parser = self._get_parser(plugin)
        tree = parser.parse(content)
        root = tree.root_node

        if root.has_error and self.strict_syntax:
            raise ParseError(path, f"syntax error at line {self._first_error_line(root)}")

        lines = count_lines(content)
        symbols = plugin.collect_symbols(root)
        for symbol in symbols:
            symbol.line_end = max(symbol.line_start, min(symbol.line_end, lines))

        self._attach_calls(plugin, root, symbols)
        imports = self._extract_imports(plugin, root, path)

        logger.debug(f"Extracted {len(symbols)} symbols from {path}")
        return ParsedFile(
            path=path,
            language=plugin.config.name,
            size=len(content),
            lines=lines,
            symbols=symbols,
            imports=imports,
        )

    def _attach_calls(
        self, plugin: LanguagePlugin, root: "Node", symbols: List[ExtractedSymbol]
    ) -> None:
        query = plugin.tree_sitter_queries.calls
        if not query or not symbols:
            return

        language = plugin.config.tree_sitter_language or plugin.config.name
        callees = run_query(root, query, language).get("callee", [])
        callees = sorted(callees, key=lambda n: (n.start_byte, n.end_byte))

        seen: Dict[int, set] = {}
        for callee in callees:
            owner = self._find_enclosing_symbol(callee.start_byte, symbols)
            if owner is None:
                # Module-level call sites belong to no symbol
                continue
            raw = plugin.call_reference(callee)
            if not raw:
                continue
            names = seen.setdefault(id(owner), set())
            if raw not in names:
                names.add(raw)
                owner.calls.append(raw)

    @staticmethod
    def _find_enclosing_symbol(
        offset: int, symbols: List[ExtractedSymbol]
    ) -> Optional[ExtractedSymbol]:
        """Innermost symbol whose byte range contains the offset."""
        best: Optional[ExtractedSymbol] = None
        for symbol in symbols:
            if symbol.start_byte <= offset < symbol.end_byte:
                if best is None or symbol.start_byte >= best.start_byte:
                    best = symbol
        return best

    def _extract_imports(self, plugin: LanguagePlugin, root: "Node", path: str) -> List[ImportBinding]:
        query = plugin.tree_sitter_queries.imports
        if not query:
            return []

        language = plugin.config.tree_sitter_language or plugin.config.name
        statements = run_query(root, query, language).get("import", [])
        module_path, is_package = plugin.module_path(path)

        bindings: List[ImportBinding] = []
        for statement in sorted(statements, key=lambda n: n.start_byte):
            bindings.extend(plugin.import_bindings(statement, module_path, is_package))
        return bindings

    @staticmethod
    def _first_error_line(root: "Node") -> int:
        """Line of the first ERROR or missing node, in document order."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                return node.start_point[0] + 1
            # Reversed so the leftmost child is visited first
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
        return root.start_point[0] + 1
