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

"""Persisted records of the semantic index.

Field declaration order is the serialized order, so reordering fields
changes the on-disk format and must come with a SCHEMA_VERSION bump.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Bump when any persisted model changes shape or meaning
SCHEMA_VERSION = 1


class CalleeKind(str, Enum):
    """Classification of a call target."""

    LOCAL = "local"  # symbol id in this index
    BUILTIN = "builtin"  # language runtime / standard library
    EXTERNAL = "external"  # third-party qualified name
    UNRESOLVED = "unresolved"  # raw name, no rule matched


class CallEdge(BaseModel):
    """Directed call from a symbol to a callee reference."""

    model_config = ConfigDict(frozen=True)

    caller: str
    kind: CalleeKind
    target: str  # symbol id for LOCAL, name/path otherwise

    @property
    def is_local(self) -> bool:
        return self.kind is CalleeKind.LOCAL


class Parameter(BaseModel):
    """Declared parameter of a function or method."""

    name: str
    type: Optional[str] = None


class ImportBinding(BaseModel):
    """A name bound in a file's namespace by an import.

    `path` is the absolute module path the alias stands for, in segments.
    Wildcard imports use alias "*" and bind every top-level name of `path`.
    """

    alias: str
    path: List[str]
    wildcard: bool = False


class SymbolRecord(BaseModel):
    """Function, class, method or type declared in a source file."""

    id: str
    kind: str  # function, method, class, struct, enum, union, trait
    name: str
    qualified_name: str
    parent: Optional[str] = None  # enclosing class/impl/trait for methods
    file: str
    parameters: List[Parameter] = Field(default_factory=list)
    return_type: Optional[str] = None
    doc: Optional[str] = None
    line_start: int
    line_end: int
    raw_calls: List[str] = Field(default_factory=list)  # as written, first-occurrence order
    calls: List[CallEdge] = Field(default_factory=list)
    called_by: List[str] = Field(default_factory=list)


class FileRecord(BaseModel):
    """Indexed source file."""

    path: str  # repository-relative, forward slashes
    language: str
    size: int
    lines: int
    fingerprint: str
    symbols: List[str] = Field(default_factory=list)  # ids in declaration order
    imports: List[ImportBinding] = Field(default_factory=list)
    error: Optional[str] = None  # set when the file failed to parse


class RepoStats(BaseModel):
    """Repository-level totals over indexed files."""

    file_count: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    symbol_count: int = 0
    parse_errors: int = 0


class ContextIndex(BaseModel):
    """The semantic index: files, symbols and the call graph."""

    schema_version: int = SCHEMA_VERSION
    stats: RepoStats = Field(default_factory=RepoStats)
    files: List[FileRecord] = Field(default_factory=list)
    symbols: List[SymbolRecord] = Field(default_factory=list)

    def get_file(self, path: str) -> Optional[FileRecord]:
        for record in self.files:
            if record.path == path:
                return record
        return None

    def get_symbol(self, symbol_id: str) -> Optional[SymbolRecord]:
        for symbol in self.symbols:
            if symbol.id == symbol_id:
                return symbol
        return None

    def find_symbols(self, name: str) -> List[SymbolRecord]:
        """Find symbols by simple or qualified name."""
        return [s for s in self.symbols if s.name == name or s.qualified_name == name]

    def symbols_in_file(self, path: str) -> List[SymbolRecord]:
        return [s for s in self.symbols if s.file == path]


class RepoMetadata(BaseModel):
    """Change-detection state; internal, not part of the public index format."""

    schema_version: int = SCHEMA_VERSION
    fingerprints: Dict[str, str] = Field(default_factory=dict)
