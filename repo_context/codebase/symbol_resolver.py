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

"""Call resolution over the merged symbol table.

Each raw call reference is resolved with this precedence:

1. a matching symbol declared in the caller's file
2. a matching symbol in the caller's namespace (imports, wildcard
   imports, the caller's own type across files)
3. a matching symbol unique across the repository (same language)
4. a builtin / standard-library name
5. an external qualified path
6. otherwise unresolved

More than one candidate at any step resolves to Unresolved. Forward
edges are rebuilt for every symbol on every run; the reverse graph is
the inversion of Local edges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from repo_context.codebase.symbol_table import SymbolTable
from repo_context.languages.base import UNKNOWN_RECEIVER, LanguagePlugin, Reference
from repo_context.languages.registry import LanguageRegistry
from repo_context.models import CallEdge, CalleeKind, FileRecord, ImportBinding, SymbolRecord

logger = logging.getLogger(__name__)

# Reference forms
_BARE = "bare"
_RECEIVER = "receiver"
_CONTAINER = "container"
_NAMESPACE = "namespace"
_INSTANCE = "instance"


@dataclass
class _FileScope:
    module_path: Tuple[str, ...]
    bindings: Dict[str, ImportBinding] = field(default_factory=dict)
    wildcards: List[ImportBinding] = field(default_factory=list)


@dataclass
class _LanguageIndex:
    """Lookup tables for one language."""

    top_level: Dict[str, List[SymbolRecord]] = field(default_factory=dict)
    methods: Dict[str, List[SymbolRecord]] = field(default_factory=dict)
    members: Dict[Tuple[str, str], List[SymbolRecord]] = field(default_factory=dict)
    # every suffix of module path + qualified name segments
    paths: Dict[Tuple[str, ...], List[SymbolRecord]] = field(default_factory=dict)
    # every suffix of module paths and enclosing scopes
    scopes: Set[Tuple[str, ...]] = field(default_factory=set)
    containers: Set[str] = field(default_factory=set)


def _unique(candidates: List[SymbolRecord]) -> List[SymbolRecord]:
    seen: Dict[str, SymbolRecord] = {}
    for candidate in candidates:
        seen.setdefault(candidate.id, candidate)
    return list(seen.values())


class CallResolver:
    """Resolve raw call references into CallEdges and derive called_by."""

    def __init__(self, table: SymbolTable, registry: LanguageRegistry):
        self.table = table
        self.registry = registry
        self._indexes: Dict[str, _LanguageIndex] = {}
        self._scopes: Dict[str, _FileScope] = {}
        self._plugins: Dict[str, Optional[LanguagePlugin]] = {}

    def _plugin(self, language: str) -> Optional[LanguagePlugin]:
        if language not in self._plugins:
            if self.registry.has(language):
                self._plugins[language] = self.registry.get(language)
            else:
                logger.warning(f"No plugin registered for {language}, calls stay unresolved")
                self._plugins[language] = None
        return self._plugins[language]

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------

    def _build_indexes(self) -> None:
        self._indexes.clear()
        self._scopes.clear()

        for record in self.table.files():
            plugin = self._plugin(record.language)
            if plugin is None:
                continue
            index = self._indexes.setdefault(record.language, _LanguageIndex())
            module_path, _ = plugin.module_path(record.path)
            self._scopes[record.path] = self._file_scope(record, module_path)
            self._add_suffixes(index.scopes, module_path)

            separator = plugin.config.scope_separator
            for symbol in self.table.symbols_in(record.path):
                qualified = tuple(symbol.qualified_name.split(separator))
                full_path = module_path + qualified
                for i in range(len(full_path)):
                    index.paths.setdefault(full_path[i:], []).append(symbol)
                self._add_suffixes(index.scopes, module_path + qualified[:-1])

                if symbol.kind in plugin.container_kinds:
                    index.containers.add(symbol.name)
                    self._add_suffixes(index.scopes, full_path)
                if symbol.parent is None:
                    index.top_level.setdefault(symbol.name, []).append(symbol)
                else:
                    index.methods.setdefault(symbol.name, []).append(symbol)
                    index.members.setdefault((symbol.parent, symbol.name), []).append(symbol)

    @staticmethod
    def _add_suffixes(scopes: Set[Tuple[str, ...]], path: Tuple[str, ...]) -> None:
        for i in range(len(path)):
            scopes.add(path[i:])

    @staticmethod
    def _file_scope(record: FileRecord, module_path: Tuple[str, ...]) -> _FileScope:
        scope = _FileScope(module_path=module_path)
        for binding in record.imports:
            if binding.wildcard:
                scope.wildcards.append(binding)
            else:
                # Later imports rebind the name
                scope.bindings[binding.alias] = binding
        return scope

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_all(self) -> None:
        """Rebuild every symbol's forward edges and the reverse graph."""
        self._build_indexes()
        symbols = self.table.symbols()

        for symbol in symbols:
            symbol.calls = self._resolve_symbol(symbol)
            symbol.called_by = []

        callers: Dict[str, Set[str]] = {}
        for symbol in symbols:
            for edge in symbol.calls:
                if edge.is_local:
                    callers.setdefault(edge.target, set()).add(symbol.id)

        for target, sources in callers.items():
            callee = self.table.get(target)
            if callee is not None:
                callee.called_by = sorted(sources)

        local = sum(len(v) for v in callers.values())
        logger.debug(f"Resolved calls for {len(symbols)} symbols ({local} local edges)")

    def _resolve_symbol(self, symbol: SymbolRecord) -> List[CallEdge]:
        record = self.table.get_file(symbol.file)
        plugin = self._plugin(record.language) if record is not None else None

        edges: Set[Tuple[str, str]] = set()
        for raw in symbol.raw_calls:
            if plugin is None:
                kind, target = CalleeKind.UNRESOLVED, raw
            else:
                kind, target = self.resolve_reference(symbol, raw, plugin, record.language)
            edges.add((kind.value, target))

        return [
            CallEdge(caller=symbol.id, kind=CalleeKind(kind), target=target)
            for kind, target in sorted(edges)
        ]

    def resolve_reference(
        self,
        caller: SymbolRecord,
        raw: str,
        plugin: LanguagePlugin,
        language: str,
    ) -> Tuple[CalleeKind, str]:
        """Resolve one raw reference made from within caller."""
        index = self._indexes.get(language, _LanguageIndex())
        scope = self._scopes.get(caller.file, _FileScope(module_path=()))
        ref = plugin.split_reference(raw)

        form, expanded = self._classify(ref, plugin, scope, index)

        for step in (self._same_file, self._namespace, self._repository):
            candidates, stop = step(form, ref, expanded, caller, scope, index)
            if ref.root == UNKNOWN_RECEIVER:
                # An expression receiver (super(), make()) never names the caller itself
                candidates = [c for c in candidates if c.id != caller.id]
            if len(candidates) == 1:
                return CalleeKind.LOCAL, candidates[0].id
            if len(candidates) > 1:
                return CalleeKind.UNRESOLVED, raw
            if stop:
                break

        outside = plugin.classify_unmatched(ref, expanded if form == _NAMESPACE else None)
        if outside is not None:
            return outside
        return CalleeKind.UNRESOLVED, raw

    def _classify(
        self,
        ref: Reference,
        plugin: LanguagePlugin,
        scope: _FileScope,
        index: _LanguageIndex,
    ) -> Tuple[str, Optional[Tuple[str, ...]]]:
        if ref.root in plugin.receiver_names and len(ref.parts) == 2:
            return _RECEIVER, None
        if ref.qualifier and ref.qualifier[-1] in index.containers and ref.root not in scope.bindings:
            return _CONTAINER, None
        expanded = plugin.expand_reference(ref, scope.bindings)
        if expanded:
            return _NAMESPACE, expanded
        if ref.qualifier:
            return _INSTANCE, None
        return _BARE, None

    # Each step returns (candidates, stop); stop skips the remaining
    # repository steps and falls through to builtin/external classification.

    def _same_file(
        self,
        form: str,
        ref: Reference,
        expanded: Optional[Tuple[str, ...]],
        caller: SymbolRecord,
        scope: _FileScope,
        index: _LanguageIndex,
    ) -> Tuple[List[SymbolRecord], bool]:
        if form == _NAMESPACE:
            return [], False
        if form == _RECEIVER:
            if caller.parent is None:
                return [], False
            candidates = index.members.get((caller.parent, ref.name), [])
        else:
            candidates = self._by_form(form, ref, expanded, index)
        return _unique([s for s in candidates if s.file == caller.file]), False

    def _namespace(
        self,
        form: str,
        ref: Reference,
        expanded: Optional[Tuple[str, ...]],
        caller: SymbolRecord,
        scope: _FileScope,
        index: _LanguageIndex,
    ) -> Tuple[List[SymbolRecord], bool]:
        if form == _RECEIVER and caller.parent is not None:
            # The caller's own type, possibly implemented across files
            return _unique(index.members.get((caller.parent, ref.name), [])), False

        if form == _BARE:
            found: List[SymbolRecord] = []
            for binding in scope.wildcards:
                path = tuple(binding.path) + (ref.name,)
                found.extend(s for s in index.paths.get(path, []) if s.parent is None)
            return _unique(found), False

        if form == _NAMESPACE and expanded:
            candidates = index.paths.get(expanded, [])
            if len(expanded) == 1:
                candidates = [s for s in candidates if s.parent is None]
            module = expanded[:-1]
            outside = bool(module) and module not in index.scopes
            return _unique(candidates), outside

        return [], False

    def _repository(
        self,
        form: str,
        ref: Reference,
        expanded: Optional[Tuple[str, ...]],
        caller: SymbolRecord,
        scope: _FileScope,
        index: _LanguageIndex,
    ) -> Tuple[List[SymbolRecord], bool]:
        if form == _RECEIVER:
            return _unique(index.methods.get(ref.name, [])), False
        return _unique(self._by_form(form, ref, expanded, index)), False

    @staticmethod
    def _by_form(
        form: str,
        ref: Reference,
        expanded: Optional[Tuple[str, ...]],
        index: _LanguageIndex,
    ) -> List[SymbolRecord]:
        """Symbols of matching name admissible for the reference form."""
        name = ref.name
        if form == _BARE:
            return index.top_level.get(name, [])
        if form == _CONTAINER:
            return index.members.get((ref.qualifier[-1], name), [])
        if form == _NAMESPACE and expanded:
            if len(expanded) >= 2 and expanded[-2] in index.containers:
                return index.members.get((expanded[-2], name), [])
            return index.top_level.get(name, [])
        return index.methods.get(name, [])
