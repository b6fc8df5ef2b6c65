# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the language plugin registry."""

from pathlib import PurePosixPath

import pytest

from repo_context.errors import UnsupportedFile
from repo_context.languages.base import LanguageConfig
from repo_context.languages.plugins.python import PythonPlugin
from repo_context.languages.plugins.rust import RustPlugin
from repo_context.languages.registry import LanguageRegistry


class PyiPlugin(PythonPlugin):
    """Python plugin claiming stub files only."""

    def _create_config(self) -> LanguageConfig:
        return LanguageConfig(
            name="python-stubs",
            display_name="Python stubs",
            aliases=["pyi"],
            extensions=[".pyi"],
            tree_sitter_language="python",
            scope_separator=".",
        )


class TestLanguageRegistry:
    """Registration and lookup."""

    def test_builtin_plugins(self, registry):
        assert registry.list_languages() == ["python", "rust"]
        assert isinstance(registry.get("python"), PythonPlugin)
        assert isinstance(registry.get("rust"), RustPlugin)

    def test_detect_language(self, registry):
        assert registry.detect_language(PurePosixPath("src/app.py")) == "python"
        assert registry.detect_language(PurePosixPath("src/lib.rs")) == "rust"
        assert registry.detect_language(PurePosixPath("README.md")) is None
        assert registry.detect_language(PurePosixPath("Makefile")) is None

    def test_plugin_for_unsupported_file(self, registry):
        assert isinstance(registry.plugin_for(PurePosixPath("a.PY")), PythonPlugin)
        with pytest.raises(UnsupportedFile) as exc_info:
            registry.plugin_for(PurePosixPath("docs/index.md"))
        assert exc_info.value.path == "docs/index.md"

    def test_aliases_and_unknown_names(self, registry):
        assert registry.has("py")
        assert registry.has("rs")
        assert registry.get("PY") is registry.get("python")
        assert not registry.has("cobol")
        with pytest.raises(KeyError, match="Available: python, rust"):
            registry.get("cobol")

    def test_plugin_instances_are_cached(self, registry):
        assert registry.get("rust") is registry.get("rust")

    def test_custom_registration(self):
        registry = LanguageRegistry()
        registry.register("python-stubs", PyiPlugin)

        assert registry.list_languages() == ["python-stubs"]
        assert registry.detect_language(PurePosixPath("types/api.pyi")) == "python-stubs"
        assert registry.detect_language(PurePosixPath("api.py")) is None
        assert registry.get("pyi").config.name == "python-stubs"
        assert registry.get_extensions("python-stubs") == [".pyi"]
