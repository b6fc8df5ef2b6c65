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

"""Merged, repository-wide symbol table.

Records are owned per file: reparsing a file swaps its whole symbol set,
removing a file drops it. Records of untouched files are carried over
as-is from the previous index.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from repo_context.codebase.tree_sitter_extractor import ParsedFile
from repo_context.models import (
    ContextIndex,
    FileRecord,
    RepoStats,
    SymbolRecord,
)

logger = logging.getLogger(__name__)


def make_symbol_id(file_path: str, qualified_name: str, kind: str) -> str:
    """Generate a stable symbol ID.

    Format: {kind}:{file_path}:{qualified_name}

    A pure function of the symbol's identity, so IDs survive additions and
    removals elsewhere in the repository.
    """
    return f"{kind}:{file_path}:{qualified_name}"


def records_from_parsed(
    parsed: ParsedFile, fingerprint: str
) -> Tuple[FileRecord, List[SymbolRecord]]:
    """Convert an extraction result into persisted records.

    Returns:
        (FileRecord, list of SymbolRecord in declaration order)
    """
    symbols: List[SymbolRecord] = []
    occurrences: Dict[str, int] = {}

    for extracted in parsed.symbols:
        symbol_id = make_symbol_id(parsed.path, extracted.qualified_name, extracted.kind)
        occurrences[symbol_id] = occurrences.get(symbol_id, 0) + 1
        if occurrences[symbol_id] > 1:
            # Redefinitions in one file (e.g. under if/else) keep declaration order
            symbol_id = f"{symbol_id}~{occurrences[symbol_id]}"

        symbols.append(
            SymbolRecord(
                id=symbol_id,
                kind=extracted.kind,
                name=extracted.name,
                qualified_name=extracted.qualified_name,
                parent=extracted.parent,
                file=parsed.path,
                parameters=list(extracted.parameters),
                return_type=extracted.return_type,
                doc=extracted.doc,
                line_start=extracted.line_start,
                line_end=extracted.line_end,
                raw_calls=list(extracted.calls),
            )
        )

    record = FileRecord(
        path=parsed.path,
        language=parsed.language,
        size=parsed.size,
        lines=parsed.lines,
        fingerprint=fingerprint,
        symbols=[s.id for s in symbols],
        imports=list(parsed.imports),
        error=parsed.error,
    )
    return record, symbols


class SymbolTable:
    """identifier -> SymbolRecord plus file -> ordered symbol identifiers."""

    def __init__(self, previous: Optional[ContextIndex] = None):
        self._files: Dict[str, FileRecord] = {}
        self._symbols: Dict[str, SymbolRecord] = {}
        if previous is not None:
            for file_record in previous.files:
                self._files[file_record.path] = file_record
            for symbol in previous.symbols:
                self._symbols[symbol.id] = symbol

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def remove_file(self, path: str) -> None:
        """Delete a file and every symbol it owns."""
        record = self._files.pop(path, None)
        if record is None:
            return
        for symbol_id in record.symbols:
            self._symbols.pop(symbol_id, None)
        logger.debug(f"Removed {path} ({len(record.symbols)} symbols)")

    def replace_file(self, parsed: ParsedFile, fingerprint: str) -> FileRecord:
        """Atomically swap a file's symbol set for a freshly parsed one."""
        self.remove_file(parsed.path)
        record, symbols = records_from_parsed(parsed, fingerprint)
        self._files[record.path] = record
        for symbol in symbols:
            self._symbols[symbol.id] = symbol
        return record

    def retain(self, paths: Iterable[str]) -> List[str]:
        """Drop every file not in paths.

        Returns:
            Removed paths, sorted
        """
        keep = set(paths)
        removed = sorted(path for path in self._files if path not in keep)
        for path in removed:
            self.remove_file(path)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, symbol_id: str) -> bool:
        return symbol_id in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def get(self, symbol_id: str) -> Optional[SymbolRecord]:
        return self._symbols.get(symbol_id)

    def get_file(self, path: str) -> Optional[FileRecord]:
        return self._files.get(path)

    def files(self) -> List[FileRecord]:
        """File records sorted by path."""
        return [self._files[path] for path in sorted(self._files)]

    def symbols_in(self, path: str) -> List[SymbolRecord]:
        record = self._files.get(path)
        if record is None:
            return []
        return [self._symbols[symbol_id] for symbol_id in record.symbols]

    def symbols(self) -> List[SymbolRecord]:
        """All symbols, by file path then declaration order."""
        ordered: List[SymbolRecord] = []
        for record in self.files():
            ordered.extend(self._symbols[symbol_id] for symbol_id in record.symbols)
        return ordered

    def fingerprints(self) -> Dict[str, str]:
        return {path: self._files[path].fingerprint for path in sorted(self._files)}

    def stats(self) -> RepoStats:
        files = self.files()
        return RepoStats(
            file_count=len(files),
            total_bytes=sum(f.size for f in files),
            total_lines=sum(f.lines for f in files),
            symbol_count=len(self._symbols),
            parse_errors=sum(1 for f in files if f.error is not None),
        )

    def to_index(self) -> ContextIndex:
        return ContextIndex(stats=self.stats(), files=self.files(), symbols=self.symbols())

    def check_invariants(self) -> List[str]:
        """Report structural violations; an empty list means the table is consistent.

        Checks:
        - every file's symbol ids exist and belong to that file
        - every symbol is listed by its owning file
        - local call targets exist
        - called_by is exactly the transpose of local calls
        - line ranges fall within the owning file
        """
        problems: List[str] = []
        listed = set()

        for record in self._files.values():
            for symbol_id in record.symbols:
                symbol = self._symbols.get(symbol_id)
                if symbol is None:
                    problems.append(f"{record.path}: missing symbol {symbol_id}")
                elif symbol.file != record.path:
                    problems.append(f"{symbol_id}: listed by {record.path}, owned by {symbol.file}")
                listed.add(symbol_id)

        expected_callers: Dict[str, set] = {}
        for symbol_id, symbol in self._symbols.items():
            if symbol_id not in listed:
                problems.append(f"{symbol_id}: not listed by any file")

            owner = self._files.get(symbol.file)
            if owner is not None and not (1 <= symbol.line_start <= symbol.line_end <= max(owner.lines, 1)):
                problems.append(
                    f"{symbol_id}: lines {symbol.line_start}-{symbol.line_end} outside {symbol.file}"
                )

            for edge in symbol.calls:
                if edge.caller != symbol_id:
                    problems.append(f"{symbol_id}: edge caller is {edge.caller}")
                if edge.is_local:
                    if edge.target not in self._symbols:
                        problems.append(f"{symbol_id}: dangling call to {edge.target}")
                    expected_callers.setdefault(edge.target, set()).add(symbol_id)

        for symbol_id, symbol in self._symbols.items():
            if set(symbol.called_by) != expected_callers.get(symbol_id, set()):
                problems.append(f"{symbol_id}: called_by does not match incoming calls")

        return problems
