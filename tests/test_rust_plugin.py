# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for Rust extraction through the tree-sitter extractor."""

import pytest

from repo_context.codebase.tree_sitter_extractor import TreeSitterExtractor
from repo_context.errors import ParseError
from repo_context.languages.plugins.rust import RustPlugin
from repo_context.models import CalleeKind, ImportBinding, Parameter

SOURCE = """\
use std::collections::HashMap;
use crate::util::{helper, other as alias};
use super::models::*;

/// A point in space.
/// Second line.
#[derive(Debug)]
pub struct Point {
    x: i32,
}

impl Point {
    /// Creates a point.
    pub fn new(x: i32) -> Self {
        Point { x }
    }

    pub fn shift(&mut self, dx: i32) {
        self.x += dx;
        helper();
        Self::new(1);
        helper();
    }
}

pub trait Shape {
    fn area(&self) -> f64;
}

mod inner {
    pub fn deep() {}
}

fn main() {
    let mut p = Point::new(1);
    let _ = std::fs::read("x");
    p.shift(2);
    let v = Vec::<u8>::new();
}
"""


@pytest.fixture
def parsed(registry):
    return TreeSitterExtractor(registry).extract("src/geo/shapes.rs", SOURCE.encode(), "rust")


def by_name(parsed, qualified_name):
    return [s for s in parsed.symbols if s.qualified_name == qualified_name]


class TestRustSymbols:
    """Items, impl methods and module scoping."""

    def test_declaration_order_and_kinds(self, parsed):
        assert [(s.qualified_name, s.kind, s.parent) for s in parsed.symbols] == [
            ("Point", "struct", None),
            ("Point::new", "method", "Point"),
            ("Point::shift", "method", "Point"),
            ("Shape", "trait", None),
            ("Shape::area", "method", "Shape"),
            ("inner::deep", "function", None),
            ("main", "function", None),
        ]

    def test_doc_comments_skip_attributes(self, parsed):
        (point,) = by_name(parsed, "Point")
        (new,) = by_name(parsed, "Point::new")
        (shift,) = by_name(parsed, "Point::shift")
        assert point.doc == "A point in space.\nSecond line."
        assert new.doc == "Creates a point."
        assert shift.doc is None

    def test_block_doc_comments_and_plain_comments(self, registry):
        source = (
            "//// not documentation\n"
            "/// Adds.\n"
            "/** Block\n"
            " * second */\n"
            "#[inline]\n"
            "fn add() {}\n"
            "\n"
            "// plain\n"
            "fn sub() {}\n"
        )
        parsed = TreeSitterExtractor(registry).extract("lib.rs", source.encode(), "rust")
        (add,) = by_name(parsed, "add")
        (sub,) = by_name(parsed, "sub")
        assert add.doc == "Adds.\nBlock\nsecond"
        assert sub.doc is None

    def test_parameters_and_return_types(self, parsed):
        (new,) = by_name(parsed, "Point::new")
        (shift,) = by_name(parsed, "Point::shift")
        (area,) = by_name(parsed, "Shape::area")
        assert new.parameters == [Parameter(name="x", type="i32")]
        assert new.return_type == "Self"
        assert shift.parameters == [
            Parameter(name="self", type="&mut self"),
            Parameter(name="dx", type="i32"),
        ]
        assert shift.return_type is None
        assert area.return_type == "f64"

    def test_line_ranges(self, parsed):
        (point,) = by_name(parsed, "Point")
        (main,) = by_name(parsed, "main")
        assert (point.line_start, point.line_end) == (8, 10)
        assert (main.line_start, main.line_end) == (34, 39)


class TestRustCalls:
    """Raw call references."""

    def test_method_calls(self, parsed):
        (shift,) = by_name(parsed, "Point::shift")
        assert shift.calls == ["helper", "Self::new"]

    def test_scoped_and_generic_paths(self, parsed):
        (main,) = by_name(parsed, "main")
        assert main.calls == ["Point::new", "std::fs::read", "p.shift", "Vec::new"]

    def test_struct_expressions_are_not_calls(self, parsed):
        (new,) = by_name(parsed, "Point::new")
        assert new.calls == []


class TestRustImports:
    """use-tree bindings."""

    def test_use_trees(self, parsed):
        assert parsed.imports == [
            ImportBinding(alias="HashMap", path=["std", "collections", "HashMap"]),
            ImportBinding(alias="helper", path=["util", "helper"]),
            ImportBinding(alias="alias", path=["util", "other"]),
            ImportBinding(alias="*", path=["src", "geo", "models"], wildcard=True),
        ]

    def test_self_in_use_list_binds_module(self, registry):
        parsed = TreeSitterExtractor(registry).extract(
            "src/lib.rs", b"use crate::net::{self, Client};\n", "rust"
        )
        assert parsed.imports == [
            ImportBinding(alias="net", path=["net"]),
            ImportBinding(alias="Client", path=["net", "Client"]),
        ]


class TestRustParseErrors:
    def test_strict_mode_raises(self, registry):
        with pytest.raises(ParseError, match="syntax error at line"):
            TreeSitterExtractor(registry).extract("src/bad.rs", b"fn broken( {\n", "rust")


class TestRustScoping:
    """Module paths, expansion and builtin classification."""

    def test_module_path(self):
        plugin = RustPlugin()
        assert plugin.module_path("src/lib.rs") == (("src",), True)
        assert plugin.module_path("src/net/mod.rs") == (("src", "net"), True)
        assert plugin.module_path("src/net/client.rs") == (("src", "net", "client"), False)

    def test_split_reference(self):
        plugin = RustPlugin()
        ref = plugin.split_reference("std::fs::read")
        assert ref.parts == ("std", "fs", "read")
        assert ref.scoped is True
        assert plugin.split_reference("self.items.push").parts == ("self", "items", "push")
        assert plugin.split_reference("self.items.push").scoped is False

    def test_scoped_paths_expand_without_imports(self):
        plugin = RustPlugin()
        assert plugin.expand_reference(plugin.split_reference("crate::util::run"), {}) == (
            "util",
            "run",
        )
        assert plugin.expand_reference(plugin.split_reference("Self::new"), {}) is None
        assert plugin.expand_reference(plugin.split_reference("helper"), {}) is None

    def test_classify(self):
        plugin = RustPlugin()
        assert plugin.classify_unmatched(
            plugin.split_reference("std::fs::read"), ("std", "fs", "read")
        ) == (CalleeKind.BUILTIN, "std::fs::read")
        assert plugin.classify_unmatched(
            plugin.split_reference("serde_json::to_string"), ("serde_json", "to_string")
        ) == (CalleeKind.EXTERNAL, "serde_json::to_string")
        assert plugin.classify_unmatched(plugin.split_reference("Some"), None) == (
            CalleeKind.BUILTIN,
            "Some",
        )
        assert plugin.classify_unmatched(plugin.split_reference("v.clone"), None) == (
            CalleeKind.BUILTIN,
            "clone",
        )
        assert plugin.classify_unmatched(plugin.split_reference("run"), None) is None
