# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Shared fixtures: small repositories written to tmp_path."""

from pathlib import Path
from typing import Callable, Dict

import pytest

from repo_context.languages.registry import LanguageRegistry


def write_files(root: Path, files: Dict[str, str]) -> Path:
    """Write {relative path: text} under root, creating directories."""
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    def _make(files: Dict[str, str], name: str = "repo") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        return write_files(root, files)

    return _make


@pytest.fixture
def registry() -> LanguageRegistry:
    return LanguageRegistry.with_builtin_plugins()
