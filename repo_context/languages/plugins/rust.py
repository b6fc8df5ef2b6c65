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

"""Rust language plugin."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from repo_context.languages.base import (
    UNKNOWN_RECEIVER,
    BaseLanguagePlugin,
    DocCommentPattern,
    ExtractedSymbol,
    LanguageConfig,
    Reference,
    TreeSitterQueries,
    node_lines,
    node_text,
    posix_parts,
)
from repo_context.models import CalleeKind, ImportBinding, Parameter

if TYPE_CHECKING:
    from tree_sitter import Node

RUST_BUILTIN_ROOTS = frozenset({"std", "core", "alloc"})

RUST_PRELUDE = frozenset(
    {
        # std::prelude::v1
        "Box", "String", "Vec", "Option", "Some", "None", "Result", "Ok", "Err",
        "ToString", "ToOwned", "Clone", "Copy", "Default", "Drop", "Eq", "PartialEq",
        "Ord", "PartialOrd", "Iterator", "IntoIterator", "DoubleEndedIterator",
        "ExactSizeIterator", "Extend", "From", "Into", "TryFrom", "TryInto",
        "AsRef", "AsMut", "Fn", "FnMut", "FnOnce", "Send", "Sync", "Sized", "Unpin",
        "drop",
        # primitive types with associated functions (u32::from, str::from_utf8)
        "bool", "char", "str", "u8", "u16", "u32", "u64", "u128", "usize",
        "i8", "i16", "i32", "i64", "i128", "isize", "f32", "f64",
    }
)

# Methods of std types that show up on arbitrary receivers (x.clone(), v.iter())
RUST_COMMON_METHODS = frozenset(
    {
        "clone", "to_string", "to_owned", "into", "try_into", "unwrap", "expect",
        "unwrap_or", "unwrap_or_else", "unwrap_or_default", "map", "map_err",
        "and_then", "or_else", "ok", "err", "ok_or", "ok_or_else", "is_some",
        "is_none", "is_ok", "is_err", "as_ref", "as_mut", "as_str", "as_bytes",
        "as_slice", "iter", "iter_mut", "into_iter", "collect", "next", "rev",
        "enumerate", "zip", "take", "skip", "chain", "filter", "filter_map",
        "flat_map", "fold", "find", "any", "all", "count", "sum", "max", "min",
        "last", "first", "cloned", "copied", "push", "push_str", "pop", "insert",
        "remove", "get", "get_mut", "contains", "contains_key", "entry",
        "or_insert", "or_insert_with", "or_default", "keys", "values", "len",
        "is_empty", "extend", "sort", "sort_by", "sort_by_key", "dedup", "retain",
        "drain", "clear", "split", "trim", "starts_with", "ends_with", "replace",
        "chars", "bytes", "lines", "parse", "to_vec", "to_lowercase",
        "to_uppercase", "join", "borrow", "borrow_mut", "lock", "read", "write",
        "fmt", "eq", "cmp", "partial_cmp", "hash", "with_capacity",
    }
)

_GENERIC_ARGS = re.compile(r"<[^<>]*>")
_PATH_PREFIXES = ("crate", "self", "super")


def _strip_generics(text: str) -> str:
    """`Vec::<u8>::new` -> `Vec::new`, `HashMap<K, V>` -> `HashMap`."""
    previous = None
    while previous != text:
        previous = text
        text = _GENERIC_ARGS.sub("", text)
    text = re.sub(r"(::)+", "::", text)
    return text.strip(":").strip()


def _split_path(text: str) -> List[str]:
    return [part.strip() for part in _strip_generics(text).split("::") if part.strip()]


class RustPlugin(BaseLanguagePlugin):
    """Rust language plugin.

    Symbols:
    - free functions
    - struct, enum, union and trait items
    - methods of impl blocks and trait bodies (parent = type or trait)

    Inline `mod` blocks extend qualified names.
    """

    RECEIVER_NAMES = frozenset({"self", "Self"})
    CONTAINER_KINDS = frozenset({"struct", "enum", "union", "trait"})

    def _create_config(self) -> LanguageConfig:
        return LanguageConfig(
            name="rust",
            display_name="Rust",
            aliases=["rs"],
            extensions=[".rs"],
            tree_sitter_language="rust",
            scope_separator="::",
            doc_comment_pattern=DocCommentPattern(
                line_prefixes=["///"],
                block_start="/**",
                block_end="*/",
                skip_types=["attribute_item"],
            ),
        )

    def _create_tree_sitter_queries(self) -> TreeSitterQueries:
        return TreeSitterQueries(
            calls="(call_expression function: (_) @callee)",
            imports="(use_declaration) @import",
        )

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def collect_symbols(self, root: "Node") -> List[ExtractedSymbol]:
        symbols: List[ExtractedSymbol] = []
        self._visit_items(root, [], None, symbols)
        return symbols

    def _visit_items(
        self,
        container: "Node",
        scope: List[str],
        owner: Optional[str],
        symbols: List[ExtractedSymbol],
    ) -> None:
        for item in container.named_children:
            kind = item.type

            if kind in ("function_item", "function_signature_item"):
                self._add_function(item, scope, owner, symbols)

            elif kind in ("struct_item", "enum_item", "union_item", "trait_item"):
                name = node_text(item.child_by_field_name("name"))
                if not name:
                    continue
                symbols.append(
                    self._symbol(item, name, kind[: -len("_item")], scope, None)
                )
                body = item.child_by_field_name("body")
                if kind == "trait_item" and body is not None:
                    self._visit_items(body, scope + [name], name, symbols)

            elif kind == "impl_item":
                type_name = self._impl_type(item)
                body = item.child_by_field_name("body")
                if type_name and body is not None:
                    self._visit_items(body, scope + [type_name], type_name, symbols)

            elif kind == "mod_item":
                name = node_text(item.child_by_field_name("name"))
                body = item.child_by_field_name("body")
                if name and body is not None:
                    self._visit_items(body, scope + [name], None, symbols)

    def _add_function(
        self,
        item: "Node",
        scope: List[str],
        owner: Optional[str],
        symbols: List[ExtractedSymbol],
    ) -> None:
        name = node_text(item.child_by_field_name("name"))
        if not name:
            return
        symbol = self._symbol(item, name, "method" if owner else "function", scope, owner)
        symbol.parameters = self._parameters(item.child_by_field_name("parameters"))
        symbol.return_type = node_text(item.child_by_field_name("return_type"))
        symbols.append(symbol)

    def _symbol(
        self,
        item: "Node",
        name: str,
        kind: str,
        scope: List[str],
        owner: Optional[str],
    ) -> ExtractedSymbol:
        line_start, line_end = node_lines(item)
        return ExtractedSymbol(
            name=name,
            kind=kind,
            qualified_name="::".join(scope + [name]),
            parent=owner,
            doc=self.leading_doc_comment(item),
            line_start=line_start,
            line_end=line_end,
            start_byte=item.start_byte,
            end_byte=item.end_byte,
        )

    @staticmethod
    def _impl_type(item: "Node") -> Optional[str]:
        text = node_text(item.child_by_field_name("type"))
        if not text:
            return None
        parts = _split_path(text.lstrip("&").strip())
        return parts[-1] if parts else None

    def _parameters(self, params: Optional["Node"]) -> List[Parameter]:
        if params is None:
            return []

        result: List[Parameter] = []
        for child in params.named_children:
            if child.type == "self_parameter":
                text = node_text(child) or "self"
                result.append(Parameter(name="self", type=None if text == "self" else text))
            elif child.type == "parameter":
                result.append(
                    Parameter(
                        name=node_text(child.child_by_field_name("pattern")) or "",
                        type=node_text(child.child_by_field_name("type")),
                    )
                )
            elif child.type == "variadic_parameter":
                result.append(Parameter(name="...", type=None))
        return result

    # ------------------------------------------------------------------
    # Calls and imports
    # ------------------------------------------------------------------

    def call_reference(self, callee: "Node") -> Optional[str]:
        kind = callee.type
        if kind in ("identifier", "self"):
            return node_text(callee)
        if kind == "scoped_identifier":
            return _strip_generics(node_text(callee) or "") or None
        if kind == "field_expression":
            return self._field_path(callee)
        if kind == "generic_function":
            function = callee.child_by_field_name("function")
            return self.call_reference(function) if function is not None else None
        # Closures, parenthesized expressions and indexing have no name
        return None

    def _field_path(self, node: "Node") -> str:
        kind = node.type
        if kind in ("identifier", "self"):
            return node_text(node) or UNKNOWN_RECEIVER
        if kind == "scoped_identifier":
            return _strip_generics(node_text(node) or "") or UNKNOWN_RECEIVER
        if kind == "field_expression":
            value = node.child_by_field_name("value")
            field_name = node_text(node.child_by_field_name("field"))
            prefix = self._field_path(value) if value is not None else UNKNOWN_RECEIVER
            return f"{prefix}.{field_name}"
        return UNKNOWN_RECEIVER

    def import_bindings(
        self, statement: "Node", module_path: Tuple[str, ...], is_package: bool
    ) -> List[ImportBinding]:
        argument = statement.child_by_field_name("argument")
        if argument is None:
            return []
        bindings: List[ImportBinding] = []
        self._use_tree(argument, [], module_path, bindings)
        return bindings

    def _use_tree(
        self,
        node: "Node",
        prefix: List[str],
        module_path: Tuple[str, ...],
        bindings: List[ImportBinding],
    ) -> None:
        kind = node.type

        if kind in ("identifier", "scoped_identifier", "self", "crate", "super"):
            path = prefix + _split_path(node_text(node) or "")
            alias = path[-1] if path else None
            if alias == "self":
                # `use a::b::{self}` binds `b`
                path = path[:-1]
                alias = path[-1] if path else None
            resolved = self._absolute(path, module_path)
            if alias and alias not in _PATH_PREFIXES and resolved:
                bindings.append(ImportBinding(alias=alias, path=resolved))

        elif kind == "use_as_clause":
            path = prefix + _split_path(node_text(node.child_by_field_name("path")) or "")
            alias = node_text(node.child_by_field_name("alias"))
            resolved = self._absolute(path, module_path)
            if alias and alias != "_" and resolved:
                bindings.append(ImportBinding(alias=alias, path=resolved))

        elif kind == "scoped_use_list":
            path_node = node.child_by_field_name("path")
            list_node = node.child_by_field_name("list")
            inner = prefix + (_split_path(node_text(path_node) or "") if path_node else [])
            if list_node is not None:
                self._use_tree(list_node, inner, module_path, bindings)

        elif kind == "use_list":
            for child in node.named_children:
                self._use_tree(child, prefix, module_path, bindings)

        elif kind == "use_wildcard":
            text = (node_text(node) or "").rstrip("*").rstrip(":")
            resolved = self._absolute(prefix + _split_path(text), module_path)
            bindings.append(ImportBinding(alias="*", path=resolved, wildcard=True))

    @staticmethod
    def _absolute(path: List[str], module_path: Tuple[str, ...]) -> List[str]:
        """Resolve leading `crate`, `self` and `super` segments."""
        if not path:
            return []
        head = path[0]
        if head == "crate":
            return path[1:]
        if head == "self":
            return list(module_path) + path[1:]
        if head == "super":
            base = list(module_path)
            rest = path
            while rest and rest[0] == "super":
                base = base[:-1]
                rest = rest[1:]
            return base + rest
        return path

    # ------------------------------------------------------------------
    # Scoping
    # ------------------------------------------------------------------

    def module_path(self, rel_path: str) -> Tuple[Tuple[str, ...], bool]:
        parts = posix_parts(rel_path)
        if parts[-1] in ("mod", "lib", "main"):
            return parts[:-1], True
        return parts, False

    def expand_reference(
        self, ref: Reference, bindings: Dict[str, ImportBinding]
    ) -> Optional[Tuple[str, ...]]:
        expanded = super().expand_reference(ref, bindings)
        if expanded is not None or not ref.scoped or ref.root in self.receiver_names:
            return expanded
        parts = list(ref.parts)
        while parts and parts[0] in _PATH_PREFIXES:
            parts = parts[1:]
        return tuple(parts) if parts else None

    def classify_unmatched(
        self, ref: Reference, expanded: Optional[Tuple[str, ...]]
    ) -> Optional[Tuple[CalleeKind, str]]:
        if expanded:
            target = "::".join(expanded)
            if expanded[0] in RUST_BUILTIN_ROOTS or expanded[0] in RUST_PRELUDE:
                return CalleeKind.BUILTIN, target
            return CalleeKind.EXTERNAL, target

        if not ref.qualifier:
            if ref.name in RUST_PRELUDE:
                return CalleeKind.BUILTIN, ref.name
            return None

        if ref.name in RUST_COMMON_METHODS:
            return CalleeKind.BUILTIN, ref.name
        return None
