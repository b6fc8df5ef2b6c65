# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for call resolution precedence and the reverse call graph."""

from pathlib import PurePosixPath

from repo_context.codebase.change_detector import compute_fingerprint
from repo_context.codebase.symbol_resolver import CallResolver
from repo_context.codebase.symbol_table import SymbolTable
from repo_context.codebase.tree_sitter_extractor import TreeSitterExtractor
from repo_context.models import CallEdge, CalleeKind


def build(registry, files):
    """Extract {path: source} into a resolved SymbolTable."""
    extractor = TreeSitterExtractor(registry)
    table = SymbolTable()
    for path, source in files.items():
        language = registry.detect_language(PurePosixPath(path))
        content = source.encode()
        table.replace_file(extractor.extract(path, content, language), compute_fingerprint(content))
    CallResolver(table, registry).resolve_all()
    return table


def edges(table, symbol_id):
    return [(e.kind, e.target) for e in table.get(symbol_id).calls]


class TestPrecedence:
    """same file, then namespace, then repository, then builtin/external."""

    def test_same_file_beats_repository(self, registry):
        table = build(
            registry,
            {
                "a.py": "def helper():\n    pass\n\ndef run():\n    helper()\n",
                "b.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [(CalleeKind.LOCAL, "function:a.py:helper")]

    def test_unique_repository_match(self, registry):
        table = build(
            registry,
            {
                "a.py": "def run():\n    helper()\n",
                "b.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [(CalleeKind.LOCAL, "function:b.py:helper")]
        assert table.get("function:b.py:helper").called_by == ["function:a.py:run"]

    def test_ambiguous_repository_match_is_unresolved(self, registry):
        table = build(
            registry,
            {
                "a.py": "def run():\n    helper()\n",
                "b.py": "def helper():\n    pass\n",
                "c.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [(CalleeKind.UNRESOLVED, "helper")]
        assert table.get("function:b.py:helper").called_by == []

    def test_import_narrows_ambiguous_match(self, registry):
        table = build(
            registry,
            {
                "a.py": "from c import helper\n\ndef run():\n    helper()\n",
                "b.py": "def helper():\n    pass\n",
                "c.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [(CalleeKind.LOCAL, "function:c.py:helper")]

    def test_module_import_resolves_attribute_call(self, registry):
        table = build(
            registry,
            {
                "app.py": "from pkg import util\n\ndef run():\n    util.helper()\n",
                "pkg/__init__.py": "",
                "pkg/util.py": "def helper():\n    pass\n",
                "other.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:app.py:run") == [
            (CalleeKind.LOCAL, "function:pkg/util.py:helper")
        ]

    def test_wildcard_import_narrows_ambiguous_match(self, registry):
        table = build(
            registry,
            {
                "a.py": "from util import *\n\ndef run():\n    helper()\n",
                "util.py": "def helper():\n    pass\n",
                "c.py": "def helper():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [
            (CalleeKind.LOCAL, "function:util.py:helper")
        ]


class TestPythonForms:
    """Receivers, containers and namespaces."""

    def test_self_call_resolves_to_own_class(self, registry):
        table = build(
            registry,
            {
                "svc.py": (
                    "class Svc:\n"
                    "    def helper(self):\n"
                    "        pass\n"
                    "\n"
                    "    def run(self):\n"
                    "        self.helper()\n"
                    "\n"
                    "class Other:\n"
                    "    def helper(self):\n"
                    "        pass\n"
                ),
            },
        )
        assert edges(table, "method:svc.py:Svc.run") == [
            (CalleeKind.LOCAL, "method:svc.py:Svc.helper")
        ]

    def test_super_call_never_points_at_the_caller(self, registry):
        table = build(
            registry,
            {"a.py": "class Base:\n    pass\n\nclass A(Base):\n    def t(self):\n        super().t()\n"},
        )
        assert edges(table, "method:a.py:A.t") == [
            (CalleeKind.BUILTIN, "super"),
            (CalleeKind.UNRESOLVED, "<expr>.t"),
        ]
        assert table.get("method:a.py:A.t").called_by == []

    def test_super_call_reaches_the_base_method(self, registry):
        table = build(
            registry,
            {
                "a.py": (
                    "class Base:\n"
                    "    def t(self):\n"
                    "        pass\n"
                    "\n"
                    "class A(Base):\n"
                    "    def t(self):\n"
                    "        super().t()\n"
                ),
            },
        )
        assert edges(table, "method:a.py:A.t") == [
            (CalleeKind.BUILTIN, "super"),
            (CalleeKind.LOCAL, "method:a.py:Base.t"),
        ]

    def test_class_qualified_call(self, registry):
        table = build(
            registry,
            {
                "a.py": "def run():\n    Svc.create()\n",
                "b.py": "class Svc:\n    def create(self):\n        pass\n",
                "c.py": "class Other:\n    def create(self):\n        pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [
            (CalleeKind.LOCAL, "method:b.py:Svc.create")
        ]

    def test_imported_external_module_never_matches_repository(self, registry):
        table = build(
            registry,
            {
                "a.py": "import numpy as np\n\ndef run():\n    np.array([])\n",
                "b.py": "def array():\n    pass\n",
            },
        )
        assert edges(table, "function:a.py:run") == [(CalleeKind.EXTERNAL, "numpy.array")]

    def test_builtins_and_stdlib(self, registry):
        table = build(
            registry,
            {
                "a.py": (
                    "import os\n"
                    "import requests\n"
                    "\n"
                    "def run():\n"
                    "    len([])\n"
                    "    os.path.join('a')\n"
                    "    requests.get('u')\n"
                    "    mystery()\n"
                ),
            },
        )
        assert edges(table, "function:a.py:run") == [
            (CalleeKind.BUILTIN, "len"),
            (CalleeKind.BUILTIN, "os.path.join"),
            (CalleeKind.EXTERNAL, "requests.get"),
            (CalleeKind.UNRESOLVED, "mystery"),
        ]


class TestRustForms:
    """Paths, Self and use declarations."""

    FILES = {
        "src/geo.rs": (
            "pub struct Point {\n"
            "    x: i32,\n"
            "}\n"
            "\n"
            "impl Point {\n"
            "    pub fn new(x: i32) -> Self {\n"
            "        Point { x }\n"
            "    }\n"
            "\n"
            "    pub fn reset(&mut self) {\n"
            "        *self = Self::new(0);\n"
            "    }\n"
            "}\n"
        ),
        "src/main.rs": (
            "use std::collections::HashMap;\n"
            "\n"
            "fn main() {\n"
            "    let mut p = Point::new(1);\n"
            "    p.reset();\n"
            "    let _ = std::fs::read(\"x\");\n"
            "    let _ = serde_json::to_string(&1);\n"
            "    let _m: HashMap<u8, u8> = HashMap::new();\n"
            "}\n"
        ),
    }

    def test_self_path_resolves_within_impl(self, registry):
        table = build(registry, self.FILES)
        assert edges(table, "method:src/geo.rs:Point::reset") == [
            (CalleeKind.LOCAL, "method:src/geo.rs:Point::new")
        ]

    def test_main_calls(self, registry):
        table = build(registry, self.FILES)
        assert edges(table, "function:src/main.rs:main") == [
            (CalleeKind.BUILTIN, "std::collections::HashMap::new"),
            (CalleeKind.BUILTIN, "std::fs::read"),
            (CalleeKind.EXTERNAL, "serde_json::to_string"),
            (CalleeKind.LOCAL, "method:src/geo.rs:Point::new"),
            (CalleeKind.LOCAL, "method:src/geo.rs:Point::reset"),
        ]
        assert table.get("method:src/geo.rs:Point::new").called_by == [
            "function:src/main.rs:main",
            "method:src/geo.rs:Point::reset",
        ]


class TestGraphShape:
    """Ordering, deduplication and determinism."""

    FILES = {
        "a.py": "def run():\n    helper()\n    helper()\n    zed()\n    len([])\n",
        "b.py": "def helper():\n    pass\n\ndef zed():\n    helper()\n",
    }

    def test_edges_are_sorted_and_deduplicated(self, registry):
        table = build(registry, self.FILES)
        (run,) = [s for s in table.symbols() if s.name == "run"]
        assert run.calls == [
            CallEdge(caller=run.id, kind=CalleeKind.BUILTIN, target="len"),
            CallEdge(caller=run.id, kind=CalleeKind.LOCAL, target="function:b.py:helper"),
            CallEdge(caller=run.id, kind=CalleeKind.LOCAL, target="function:b.py:zed"),
        ]
        assert table.get("function:b.py:helper").called_by == [
            "function:a.py:run",
            "function:b.py:zed",
        ]

    def test_independent_of_insertion_order(self, registry):
        forward = build(registry, self.FILES)
        backward = build(registry, dict(reversed(list(self.FILES.items()))))
        assert forward.to_index() == backward.to_index()

    def test_graph_is_consistent(self, registry):
        assert build(registry, self.FILES).check_invariants() == []

    def test_resolution_is_rebuilt_after_removal(self, registry):
        table = build(registry, self.FILES)
        table.remove_file("b.py")
        CallResolver(table, registry).resolve_all()

        assert edges(table, "function:a.py:run") == [
            (CalleeKind.BUILTIN, "len"),
            (CalleeKind.UNRESOLVED, "helper"),
            (CalleeKind.UNRESOLVED, "zed"),
        ]
        assert table.check_invariants() == []
