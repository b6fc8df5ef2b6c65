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

"""Python language plugin."""

from __future__ import annotations

import builtins
import inspect
import re
import sys
from typing import TYPE_CHECKING, List, Optional, Tuple

from repo_context.languages.base import (
    UNKNOWN_RECEIVER,
    BaseLanguagePlugin,
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

PYTHON_BUILTINS = frozenset(name for name in dir(builtins) if not name.startswith("_"))
PYTHON_STDLIB_MODULES = frozenset(sys.stdlib_module_names)
# Methods of the builtin container and scalar types (list.append, dict.items, str.join)
PYTHON_BUILTIN_METHODS = frozenset(
    name
    for builtin_type in (str, bytes, list, dict, set, frozenset, tuple, int, float)
    for name in dir(builtin_type)
    if not name.startswith("_")
)

# Compound statements whose blocks still belong to the enclosing module/class scope
_TRANSPARENT_NODES = frozenset(
    {
        "if_statement",
        "elif_clause",
        "else_clause",
        "try_statement",
        "except_clause",
        "except_group_clause",
        "finally_clause",
        "with_statement",
        "block",
    }
)

_STRING_LITERAL = re.compile(r"^[rRuUbBfF]*('''|\"\"\"|'|\")(.*)\1$", re.DOTALL)


class PythonPlugin(BaseLanguagePlugin):
    """Python language plugin.

    Symbols:
    - module-level functions and classes
    - methods (functions defined directly in a class body)
    - definitions under if/try/with blocks and decorated definitions

    Functions nested in function bodies are not symbols; their calls
    belong to the enclosing symbol.
    """

    RECEIVER_NAMES = frozenset({"self", "cls"})
    CONTAINER_KINDS = frozenset({"class"})

    def _create_config(self) -> LanguageConfig:
        return LanguageConfig(
            name="python",
            display_name="Python",
            aliases=["py", "python3"],
            extensions=[".py", ".pyw", ".pyi"],
            tree_sitter_language="python",
            scope_separator=".",
        )

    def _create_tree_sitter_queries(self) -> TreeSitterQueries:
        return TreeSitterQueries(
            calls="(call function: (_) @callee)",
            imports="""
                (import_statement) @import
                (import_from_statement) @import
            """,
        )

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def collect_symbols(self, root: "Node") -> List[ExtractedSymbol]:
        symbols: List[ExtractedSymbol] = []
        self._visit_block(root, [], None, symbols)
        return symbols

    def _visit_block(
        self,
        block: "Node",
        scope: List[str],
        owner: Optional[str],
        symbols: List[ExtractedSymbol],
    ) -> None:
        for child in block.named_children:
            if child.type == "decorated_definition":
                definition = child.child_by_field_name("definition")
                if definition is not None:
                    self._visit_definition(definition, child, scope, owner, symbols)
            elif child.type in ("function_definition", "class_definition"):
                self._visit_definition(child, child, scope, owner, symbols)
            elif child.type in _TRANSPARENT_NODES:
                self._visit_block(child, scope, owner, symbols)

    def _visit_definition(
        self,
        definition: "Node",
        outer: "Node",
        scope: List[str],
        owner: Optional[str],
        symbols: List[ExtractedSymbol],
    ) -> None:
        name = node_text(definition.child_by_field_name("name"))
        if not name:
            return

        qualified_name = ".".join(scope + [name])
        line_start, line_end = node_lines(outer)
        body = definition.child_by_field_name("body")

        if definition.type == "class_definition":
            symbols.append(
                ExtractedSymbol(
                    name=name,
                    kind="class",
                    qualified_name=qualified_name,
                    parent=owner,
                    doc=self._docstring(body),
                    line_start=line_start,
                    line_end=line_end,
                    start_byte=outer.start_byte,
                    end_byte=outer.end_byte,
                )
            )
            if body is not None:
                self._visit_block(body, scope + [name], name, symbols)
            return

        symbols.append(
            ExtractedSymbol(
                name=name,
                kind="method" if owner else "function",
                qualified_name=qualified_name,
                parent=owner,
                parameters=self._parameters(definition.child_by_field_name("parameters")),
                return_type=node_text(definition.child_by_field_name("return_type")),
                doc=self._docstring(body),
                line_start=line_start,
                line_end=line_end,
                start_byte=outer.start_byte,
                end_byte=outer.end_byte,
            )
        )

    def _parameters(self, params: Optional["Node"]) -> List[Parameter]:
        if params is None:
            return []

        result: List[Parameter] = []
        for child in params.named_children:
            if child.type in ("identifier", "list_splat_pattern", "dictionary_splat_pattern"):
                result.append(Parameter(name=node_text(child)))
            elif child.type == "typed_parameter":
                # (typed_parameter (identifier|list_splat_pattern|...) type: (type))
                target = child.named_children[0] if child.named_children else None
                result.append(
                    Parameter(
                        name=node_text(target) or "",
                        type=node_text(child.child_by_field_name("type")),
                    )
                )
            elif child.type in ("default_parameter", "typed_default_parameter"):
                result.append(
                    Parameter(
                        name=node_text(child.child_by_field_name("name")) or "",
                        type=node_text(child.child_by_field_name("type")),
                    )
                )
            # keyword_separator (*) and positional_separator (/) carry no name
        return result

    def _docstring(self, body: Optional["Node"]) -> Optional[str]:
        if body is None:
            return None

        for statement in body.named_children:
            if statement.type == "comment":
                continue
            if statement.type != "expression_statement" or not statement.named_children:
                return None
            literal = statement.named_children[0]
            if literal.type != "string":
                return None
            match = _STRING_LITERAL.match(node_text(literal) or "")
            if match is None:
                return None
            doc = inspect.cleandoc(match.group(2))
            return doc or None
        return None

    # ------------------------------------------------------------------
    # Calls and imports
    # ------------------------------------------------------------------

    def call_reference(self, callee: "Node") -> Optional[str]:
        if callee.type == "identifier":
            return node_text(callee)
        if callee.type == "attribute":
            return self._attribute_path(callee)
        # Subscripts, lambdas and calls of calls have no name to resolve
        return None

    def _attribute_path(self, node: "Node") -> str:
        if node.type == "identifier":
            return node_text(node) or UNKNOWN_RECEIVER
        if node.type == "attribute":
            obj = node.child_by_field_name("object")
            attr = node_text(node.child_by_field_name("attribute"))
            prefix = self._attribute_path(obj) if obj is not None else UNKNOWN_RECEIVER
            return f"{prefix}.{attr}"
        return UNKNOWN_RECEIVER

    def import_bindings(
        self, statement: "Node", module_path: Tuple[str, ...], is_package: bool
    ) -> List[ImportBinding]:
        bindings: List[ImportBinding] = []

        if statement.type == "import_statement":
            for name in statement.children_by_field_name("name"):
                if name.type == "aliased_import":
                    path = self._dotted(name.child_by_field_name("name"))
                    alias = node_text(name.child_by_field_name("alias"))
                    if path and alias:
                        bindings.append(ImportBinding(alias=alias, path=path))
                else:
                    # `import a.b.c` binds only `a`
                    path = self._dotted(name)
                    if path:
                        bindings.append(ImportBinding(alias=path[0], path=[path[0]]))
            return bindings

        if statement.type != "import_from_statement":
            return bindings

        module = statement.child_by_field_name("module_name")
        if module is None:
            return bindings
        if module.type == "relative_import":
            base = self._relative_base(module, module_path, is_package)
        else:
            base = self._dotted(module)

        for child in statement.named_children:
            if child.type == "wildcard_import":
                bindings.append(ImportBinding(alias="*", path=base, wildcard=True))

        for name in statement.children_by_field_name("name"):
            if name.type == "aliased_import":
                imported = self._dotted(name.child_by_field_name("name"))
                alias = node_text(name.child_by_field_name("alias"))
            else:
                imported = self._dotted(name)
                alias = imported[-1] if imported else None
            if imported and alias:
                bindings.append(ImportBinding(alias=alias, path=base + imported))

        return bindings

    def _relative_base(
        self, node: "Node", module_path: Tuple[str, ...], is_package: bool
    ) -> List[str]:
        """Resolve `from ..pkg import x` against the importing file's package."""
        dots = 0
        dotted: List[str] = []
        for child in node.children:
            if child.type == "import_prefix":
                dots = (node_text(child) or "").count(".")
            elif child.type == "dotted_name":
                dotted = self._dotted(child)

        package = list(module_path) if is_package else list(module_path[:-1])
        if dots > 1:
            package = package[: max(len(package) - (dots - 1), 0)]
        return package + dotted

    @staticmethod
    def _dotted(node: Optional["Node"]) -> List[str]:
        text = node_text(node)
        if not text:
            return []
        return [part.strip() for part in text.split(".") if part.strip()]

    # ------------------------------------------------------------------
    # Scoping
    # ------------------------------------------------------------------

    def module_path(self, rel_path: str) -> Tuple[Tuple[str, ...], bool]:
        parts = posix_parts(rel_path)
        if parts[-1] == "__init__":
            return parts[:-1], True
        return parts, False

    def classify_unmatched(
        self, ref: Reference, expanded: Optional[Tuple[str, ...]]
    ) -> Optional[Tuple[CalleeKind, str]]:
        if expanded:
            target = ".".join(expanded)
            if expanded[0] in PYTHON_STDLIB_MODULES or expanded[0] in PYTHON_BUILTINS:
                return CalleeKind.BUILTIN, target
            return CalleeKind.EXTERNAL, target

        if not ref.qualifier:
            if ref.name in PYTHON_BUILTINS:
                return CalleeKind.BUILTIN, ref.name
            return None

        if ref.root in PYTHON_STDLIB_MODULES and ref.root not in self.receiver_names:
            return CalleeKind.BUILTIN, ref.raw
        if ref.name in PYTHON_BUILTIN_METHODS:
            return CalleeKind.BUILTIN, ref.name
        return None
