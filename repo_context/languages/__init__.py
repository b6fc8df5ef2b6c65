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

"""Language support for the indexer.

Architecture:
    ┌─────────────────────────────────────────────────────────────┐
    │                   Language Registry                          │
    │  (Maps extensions/names to language plugins)                │
    └─────────────────────────────────────────────────────────────┘
                              │
                  ┌───────────┴───────────┐
                  ▼                       ▼
            ┌───────────┐           ┌───────────┐
            │  Python   │           │   Rust    │
            │  Plugin   │           │  Plugin   │
            └───────────┘           └───────────┘

Each language plugin provides:
- File extension mappings
- Symbol, call and import extraction from a tree-sitter tree
- Scoping rules used by call resolution
"""

from repo_context.languages.base import (
    BaseLanguagePlugin,
    ExtractedSymbol,
    LanguageConfig,
    LanguagePlugin,
    Reference,
    TreeSitterQueries,
)
from repo_context.languages.registry import LanguageRegistry

__all__ = [
    "BaseLanguagePlugin",
    "ExtractedSymbol",
    "LanguageConfig",
    "LanguagePlugin",
    "LanguageRegistry",
    "Reference",
    "TreeSitterQueries",
]
