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

"""Incremental repository indexer.

One run:

1. walk the repository for supported source files
2. load the previous index and metadata (full rebuild if absent or bad)
3. classify files as added / modified / unchanged / removed by content hash
4. parse added and modified files, optionally in a process pool
5. merge into the symbol table, resolve calls, derive called_by
6. persist index then metadata

Example:
    from repo_context import load_or_build

    index = load_or_build("/path/to/repo")
    for symbol in index.find_symbols("main"):
        print(symbol.id, [edge.target for edge in symbol.calls])
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from repo_context.codebase.change_detector import ChangeSet, detect_changes
from repo_context.codebase.context_store import ContextStore
from repo_context.codebase.symbol_resolver import CallResolver
from repo_context.codebase.symbol_table import SymbolTable
from repo_context.codebase.tree_sitter_extractor import ParsedFile, TreeSitterExtractor
from repo_context.codebase.walker import DiscoveredFile, discover_source_files
from repo_context.config import IndexerConfig
from repo_context.errors import CorruptMetadata, ParseError, SchemaMismatch
from repo_context.languages.registry import LanguageRegistry
from repo_context.models import ContextIndex, RepoMetadata

logger = logging.getLogger(__name__)


def extract_or_mark(
    extractor: TreeSitterExtractor, path: str, language: str, content: bytes
) -> ParsedFile:
    """Extract one file; any failure becomes that file's error marker."""
    try:
        return extractor.extract(path, content, language)
    except ParseError as e:
        logger.warning(f"Parse error in {path}: {e.reason}")
        return ParsedFile.failed(path, language, content, e.reason)
    except Exception as e:
        logger.warning(f"Failed to extract {path}: {e}")
        return ParsedFile.failed(path, language, content, f"{type(e).__name__}: {e}")


# Per-process extractors for the pool workers, keyed by strict_syntax
_worker_extractors: Dict[bool, TreeSitterExtractor] = {}


# Module-level function for ProcessPoolExecutor (must be picklable)
def _parse_file_worker(args: Tuple[str, str, bytes, bool]) -> ParsedFile:
    """Parse a single file in a subprocess using the built-in plugins.

    Args:
        args: (relative path, language, content, strict_syntax)

    Returns:
        ParsedFile, with the error marker set on failure
    """
    path, language, content, strict_syntax = args
    extractor = _worker_extractors.get(strict_syntax)
    if extractor is None:
        extractor = TreeSitterExtractor(
            LanguageRegistry.with_builtin_plugins(), strict_syntax=strict_syntax
        )
        _worker_extractors[strict_syntax] = extractor
    return extract_or_mark(extractor, path, language, content)


def _terminate_workers(executor: ProcessPoolExecutor) -> None:
    """Kill pool workers, including ones stuck in a parse.

    A running future cannot be cancelled, and the interpreter joins live
    workers at exit, so a stuck parse would otherwise hang the process.
    """
    terminate = getattr(executor, "terminate_workers", None)
    if terminate is not None:
        # Python 3.14+
        terminate()
        return

    processes = list((getattr(executor, "_processes", None) or {}).values())
    for process in processes:
        if process.is_alive():
            process.terminate()
    for process in processes:
        process.join(timeout=5)
    logger.debug(f"Terminated {len(processes)} parser processes")


@dataclass
class IndexReport:
    """What a run did."""

    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)
    full_rebuild: bool = False
    reason: Optional[str] = None  # why previous state was discarded
    written: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.added or self.modified or self.removed)


@dataclass
class IndexRun:
    index: ContextIndex
    report: IndexReport


class ContextIndexer:
    """Builds or incrementally updates the semantic index of one repository."""

    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[IndexerConfig] = None,
        registry: Optional[LanguageRegistry] = None,
    ):
        """Initialize indexer.

        Args:
            root: Repository root directory
            config: Indexer configuration; read from `.context/config.yaml`
                (or defaults) if None
            registry: Language registry; the built-in Python and Rust plugins
                if None. Custom registries always parse in-process.
        """
        self.root = Path(root).resolve()
        self.config = config or IndexerConfig.load(self.root)
        self._builtin_registry = registry is None
        self.registry = registry or LanguageRegistry.with_builtin_plugins()
        self.store = ContextStore(self.root, self.config)
        self._extractor = TreeSitterExtractor(self.registry, strict_syntax=self.config.strict_syntax)

        if self.config.parallel_workers == 0:
            # Auto-detect, capped at 4: tree-sitter parsing scales poorly beyond that
            self._parallel_workers = min(os.cpu_count() or 1, 4)
        else:
            self._parallel_workers = self.config.parallel_workers

    def run(self) -> IndexRun:
        """Bring the persisted index up to date and return it.

        Raises:
            StoreWriteError: If the index or metadata cannot be written
        """
        start_time = time.time()
        if not self.root.is_dir():
            raise NotADirectoryError(f"Repository root is not a directory: {self.root}")

        files = discover_source_files(self.root, self.registry, self.config)
        previous, reason = self._load_previous()
        report = IndexReport(full_rebuild=previous is None, reason=reason)

        fingerprints = {f.path: f.fingerprint for f in previous.files} if previous else {}
        changes = detect_changes(self.root, files, fingerprints)

        table = SymbolTable(previous)
        report.removed = table.retain(changes.fingerprints)
        report.added = [f.path for f in changes.added]
        report.modified = [f.path for f in changes.modified]
        report.unchanged = [f.path for f in changes.unchanged]

        for parsed in self._parse(changes):
            table.replace_file(parsed, changes.fingerprints[parsed.path])

        CallResolver(table, self.registry).resolve_all()

        index = table.to_index()
        report.parse_errors = [f.path for f in index.files if f.error is not None]

        if report.changed or report.full_rebuild:
            meta = RepoMetadata(fingerprints=table.fingerprints())
            self.store.save(index, meta)
            report.written = True

        elapsed = time.time() - start_time
        logger.info(
            f"Indexed {self.root}: {len(report.added)} added, {len(report.modified)} modified, "
            f"{len(report.removed)} removed, {len(report.unchanged)} unchanged, "
            f"{len(report.parse_errors)} parse errors in {elapsed:.2f}s"
        )
        return IndexRun(index=index, report=report)

    def _load_previous(self) -> Tuple[Optional[ContextIndex], Optional[str]]:
        """Load the previous index, or (None, reason) when a full rebuild is needed."""
        if not self.store.meta_path.exists() and not self.store.index_path.exists():
            return None, "no previous index"

        try:
            _, index = self.store.load()
        except SchemaMismatch as e:
            logger.warning(f"Discarding previous index: {e}")
            return None, f"schema mismatch: {e}"
        except CorruptMetadata as e:
            logger.warning(f"Discarding previous index: {e}")
            return None, f"corrupt metadata: {e}"
        return index, None

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, changes: ChangeSet) -> List[ParsedFile]:
        """Parse added and modified files; results are in path order."""
        to_parse = changes.to_parse
        if not to_parse:
            return []

        if (
            self._builtin_registry
            and self._parallel_workers > 1
            and len(to_parse) >= self.config.parallel_threshold
        ):
            try:
                return self._parse_parallel(to_parse, changes.contents)
            except (OSError, BrokenProcessPool) as e:
                logger.warning(f"Process pool unavailable, parsing sequentially: {e}")

        return [
            extract_or_mark(self._extractor, f.path, f.language, changes.contents[f.path])
            for f in to_parse
        ]

    def _parse_parallel(
        self, to_parse: List[DiscoveredFile], contents: Dict[str, bytes]
    ) -> List[ParsedFile]:
        """Parse files with ProcessPoolExecutor, merging results in walker order."""
        start_time = time.time()
        timeout = self.config.parse_timeout
        logger.info(
            f"Starting parallel parsing: {len(to_parse)} files, {self._parallel_workers} workers"
        )

        executor = ProcessPoolExecutor(max_workers=self._parallel_workers)
        timed_out = False
        results: List[ParsedFile] = []
        try:
            futures = [
                executor.submit(
                    _parse_file_worker,
                    (f.path, f.language, contents[f.path], self.config.strict_syntax),
                )
                for f in to_parse
            ]
            for discovered, future in zip(to_parse, futures):
                content = contents[discovered.path]
                try:
                    results.append(future.result(timeout=timeout))
                except FutureTimeoutError:
                    timed_out = True
                    future.cancel()
                    logger.warning(f"Parse of {discovered.path} timed out after {timeout}s")
                    results.append(
                        ParsedFile.failed(
                            discovered.path,
                            discovered.language,
                            content,
                            f"parse timed out after {timeout}s",
                        )
                    )
                except BrokenProcessPool as e:
                    logger.warning(f"Worker failed on {discovered.path}, retrying in-process: {e}")
                    results.append(
                        extract_or_mark(self._extractor, discovered.path, discovered.language, content)
                    )
        finally:
            if timed_out:
                _terminate_workers(executor)
            executor.shutdown(wait=not timed_out, cancel_futures=True)

        elapsed = time.time() - start_time
        logger.info(f"Parallel parsing complete: {len(results)} files in {elapsed:.2f}s")
        return results


def load_or_build(
    repo_root: Union[str, Path], config: Optional[IndexerConfig] = None
) -> ContextIndex:
    """Return an up-to-date semantic index for a repository.

    Reuses `.context/` state when present and valid, reparsing only files
    whose content changed; otherwise builds from scratch.

    Raises:
        StoreWriteError: If the index cannot be persisted
    """
    return ContextIndexer(repo_root, config=config).run().index
