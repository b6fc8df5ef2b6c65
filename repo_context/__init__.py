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

"""Deterministic semantic index of a source repository.

Builds an inventory of files, the symbols (functions, classes, methods,
types) each defines and the call graph between them, persisted under
`.context/` and updated incrementally from content hashes.

Package Structure:
    models.py                       - Persisted records (FileRecord, SymbolRecord, CallEdge)
    config.py                       - IndexerConfig, optional .context/config.yaml
    errors.py                       - Error taxonomy
    languages/                      - Language plugins (Python, Rust) and registry
    codebase/walker.py              - Repository walker
    codebase/change_detector.py     - Content-hash change detection
    codebase/tree_sitter_extractor.py - Per-file symbol/call/import extraction
    codebase/symbol_table.py        - Merged symbol table
    codebase/symbol_resolver.py     - Call resolution and reverse graph
    codebase/context_store.py       - Atomic persistence
    codebase/indexer.py             - Orchestration (ContextIndexer, load_or_build)

Usage:
    from repo_context import load_or_build

    index = load_or_build("/path/to/repo")
    symbol = index.get_symbol("function:src/app.py:main")
"""

from repo_context.codebase.indexer import (
    ContextIndexer,
    IndexReport,
    IndexRun,
    load_or_build,
)
from repo_context.config import IndexerConfig
from repo_context.errors import (
    ContextError,
    CorruptMetadata,
    ParseError,
    SchemaMismatch,
    StoreWriteError,
    UnsupportedFile,
)
from repo_context.models import (
    SCHEMA_VERSION,
    CallEdge,
    CalleeKind,
    ContextIndex,
    FileRecord,
    ImportBinding,
    Parameter,
    RepoMetadata,
    RepoStats,
    SymbolRecord,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "load_or_build",
    "ContextIndexer",
    "IndexRun",
    "IndexReport",
    "IndexerConfig",
    # Records
    "SCHEMA_VERSION",
    "CallEdge",
    "CalleeKind",
    "ContextIndex",
    "FileRecord",
    "ImportBinding",
    "Parameter",
    "RepoMetadata",
    "RepoStats",
    "SymbolRecord",
    # Errors
    "ContextError",
    "CorruptMetadata",
    "ParseError",
    "SchemaMismatch",
    "StoreWriteError",
    "UnsupportedFile",
]
