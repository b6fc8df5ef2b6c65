# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for Python extraction through the tree-sitter extractor."""

import pytest

from repo_context.codebase.tree_sitter_extractor import TreeSitterExtractor, count_lines
from repo_context.errors import ParseError
from repo_context.languages.plugins.python import PythonPlugin
from repo_context.models import CalleeKind, ImportBinding, Parameter

SOURCE = '''\
import os


class Greeter:
    """Greets people.

    Second paragraph.
    """

    def __init__(self, name: str, times: int = 1, *args, **kwargs) -> None:
        self.name = name

    @property
    def loud(self):
        return self.name.upper()

    def greet(self, other):
        """Say hello."""

        def shout(text):
            return format_text(text)

        helper()
        helper()
        shout(other)
        os.path.join("a", "b")
        make().run()
        return self.loud


if os.name == "nt":
    def platform_helper():
        pass
else:
    def platform_helper():
        pass


def helper():
    return len([])


helper()
'''


@pytest.fixture
def extractor(registry):
    return TreeSitterExtractor(registry)


@pytest.fixture
def parsed(extractor):
    return extractor.extract("pkg/greet.py", SOURCE.encode(), "python")


def by_name(parsed, qualified_name):
    return [s for s in parsed.symbols if s.qualified_name == qualified_name]


class TestPythonSymbols:
    """Declarations, kinds and scoping."""

    def test_declaration_order_and_kinds(self, parsed):
        assert [(s.qualified_name, s.kind) for s in parsed.symbols] == [
            ("Greeter", "class"),
            ("Greeter.__init__", "method"),
            ("Greeter.loud", "method"),
            ("Greeter.greet", "method"),
            ("platform_helper", "function"),
            ("platform_helper", "function"),
            ("helper", "function"),
        ]

    def test_method_parent_is_enclosing_class(self, parsed):
        (greet,) = by_name(parsed, "Greeter.greet")
        (cls,) = by_name(parsed, "Greeter")
        assert greet.parent == "Greeter"
        assert greet.name == "greet"
        assert cls.parent is None

    def test_parameters_and_return_type(self, parsed):
        (init,) = by_name(parsed, "Greeter.__init__")
        assert init.parameters == [
            Parameter(name="self"),
            Parameter(name="name", type="str"),
            Parameter(name="times", type="int"),
            Parameter(name="*args"),
            Parameter(name="**kwargs"),
        ]
        assert init.return_type == "None"

    def test_docstrings_are_cleaned(self, parsed):
        (cls,) = by_name(parsed, "Greeter")
        (greet,) = by_name(parsed, "Greeter.greet")
        (helper,) = by_name(parsed, "helper")
        assert cls.doc == "Greets people.\n\nSecond paragraph."
        assert greet.doc == "Say hello."
        assert helper.doc is None

    def test_line_ranges(self, parsed):
        (cls,) = by_name(parsed, "Greeter")
        (loud,) = by_name(parsed, "Greeter.loud")
        (helper,) = by_name(parsed, "helper")
        assert cls.line_start == 4
        # Decorators belong to the decorated definition
        assert loud.line_start == 13
        assert loud.line_end == 15
        assert (helper.line_start, helper.line_end) == (39, 40)

    def test_nested_functions_are_not_symbols(self, parsed):
        assert by_name(parsed, "shout") == []
        assert by_name(parsed, "Greeter.greet.shout") == []


class TestPythonCalls:
    """Raw call references attributed to enclosing symbols."""

    def test_calls_in_first_occurrence_order_without_duplicates(self, parsed):
        (greet,) = by_name(parsed, "Greeter.greet")
        assert greet.calls == [
            "format_text",
            "helper",
            "shout",
            "os.path.join",
            "make",
            "<expr>.run",
        ]

    def test_attribute_chains_on_self(self, parsed):
        (loud,) = by_name(parsed, "Greeter.loud")
        assert loud.calls == ["self.name.upper"]

    def test_module_level_calls_are_not_recorded(self, parsed):
        (helper,) = by_name(parsed, "helper")
        assert helper.calls == ["len"]


class TestPythonImports:
    """Import bindings persisted for resolution."""

    def test_import_forms(self, extractor):
        source = (
            "import os\n"
            "import numpy as np\n"
            "import xml.etree.ElementTree\n"
            "from . import sibling\n"
            "from ..core import engine as eng\n"
            "from typing import *\n"
            "from pkg.models import Model, Field as F\n"
        )
        parsed = extractor.extract("pkg/sub/mod.py", source.encode(), "python")

        assert parsed.imports == [
            ImportBinding(alias="os", path=["os"]),
            ImportBinding(alias="np", path=["numpy"]),
            ImportBinding(alias="xml", path=["xml"]),
            ImportBinding(alias="sibling", path=["pkg", "sub", "sibling"]),
            ImportBinding(alias="eng", path=["pkg", "core", "engine"]),
            ImportBinding(alias="*", path=["typing"], wildcard=True),
            ImportBinding(alias="Model", path=["pkg", "models", "Model"]),
            ImportBinding(alias="F", path=["pkg", "models", "Field"]),
        ]

    def test_relative_import_from_package_init(self, extractor):
        parsed = extractor.extract(
            "pkg/__init__.py", b"from .core import run\n", "python"
        )
        assert parsed.imports == [ImportBinding(alias="run", path=["pkg", "core", "run"])]


class TestPythonParseErrors:
    """Strict and lenient handling of syntax errors."""

    BROKEN = b"def ok():\n    pass\n\ndef broken(:\n    pass\n"

    def test_strict_mode_raises_parse_error(self, extractor):
        with pytest.raises(ParseError, match=r"syntax error at line \d+") as exc_info:
            extractor.extract("bad.py", self.BROKEN, "python")
        assert exc_info.value.path == "bad.py"

    def test_lenient_mode_keeps_recovered_symbols(self, registry):
        extractor = TreeSitterExtractor(registry, strict_syntax=False)
        parsed = extractor.extract("bad.py", self.BROKEN, "python")
        assert "ok" in [s.name for s in parsed.symbols]
        assert parsed.error is None

    def test_empty_file(self, extractor):
        parsed = extractor.extract("empty.py", b"", "python")
        assert parsed.symbols == []
        assert parsed.lines == 0
        assert parsed.size == 0


class TestPythonScoping:
    """Module paths and builtin classification."""

    def test_module_path(self):
        plugin = PythonPlugin()
        assert plugin.module_path("src/pkg/mod.py") == (("src", "pkg", "mod"), False)
        assert plugin.module_path("pkg/__init__.py") == (("pkg",), True)
        assert plugin.module_path("main.py") == (("main",), False)

    def test_classify_builtins_and_externals(self):
        plugin = PythonPlugin()
        assert plugin.classify_unmatched(plugin.split_reference("len"), None) == (
            CalleeKind.BUILTIN,
            "len",
        )
        assert plugin.classify_unmatched(
            plugin.split_reference("json.dumps"), ("json", "dumps")
        ) == (CalleeKind.BUILTIN, "json.dumps")
        assert plugin.classify_unmatched(
            plugin.split_reference("np.array"), ("numpy", "array")
        ) == (CalleeKind.EXTERNAL, "numpy.array")
        assert plugin.classify_unmatched(plugin.split_reference("items.append"), None) == (
            CalleeKind.BUILTIN,
            "append",
        )
        assert plugin.classify_unmatched(plugin.split_reference("mystery"), None) is None


def test_count_lines():
    assert count_lines(b"") == 0
    assert count_lines(b"a") == 1
    assert count_lines(b"a\n") == 1
    assert count_lines(b"a\nb") == 2
    assert count_lines(b"a\n\n") == 2
