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


from typing import TYPE_CHECKING, Dict, List

from tree_sitter import Language, Parser, Query, QueryCursor

if TYPE_CHECKING:
    from tree_sitter import Node


# Language package mapping for tree-sitter 0.25+
# Install with: pip install tree-sitter-<language>
# Format: "language_name": ("module_name", "function_name")
LANGUAGE_MODULES: Dict[str, tuple] = {
    "python": ("tree_sitter_python", "language"),
    # NOTE: tree-sitter-rust >=0.25.0 is recommended to match tree-sitter >=0.25 API
    "rust": ("tree_sitter_rust", "language"),
}

_language_cache: Dict[str, Language] = {}
_query_cache: Dict[tuple, Query] = {}


def get_language(language: str) -> Language:
    """
    Loads a tree-sitter Language object using pre-compiled language packages.

    Languages are cached per process; each extractor owns its parsers.
    """
    if language in _language_cache:
        return _language_cache[language]

    module_info = LANGUAGE_MODULES.get(language)
    if not module_info:
        raise ValueError(f"Unsupported language for tree-sitter: {language}")

    module_name, func_name = module_info

    try:
        language_module = __import__(module_name)
        lang_func = getattr(language_module, func_name)

        lang_obj = lang_func()
        # Some older grammars (e.g., tree_sitter_rust 0.24.x) expose a PyCapsule; wrap via Language
        lang = Language(lang_obj) if not isinstance(lang_obj, Language) else lang_obj

        _language_cache[language] = lang
        return lang

    except ImportError:
        raise ImportError(
            f"Language package '{module_name}' not installed. "
            f"Install it with: pip install {module_name.replace('_', '-')}"
        )
    except AttributeError:
        raise AttributeError(
            f"Language module '{module_name}' does not have function '{func_name}'. "
            f"Check the tree-sitter package version and update LANGUAGE_MODULES."
        )


def create_parser(language: str) -> Parser:
    """Returns a new tree-sitter Parser initialized with the specified language."""
    return Parser(get_language(language))


def run_query(node: "Node", query_src: str, language: str) -> Dict[str, List["Node"]]:
    """Run a tree-sitter query using the QueryCursor API.

    Args:
        node: Node to search (usually the tree root)
        query_src: Query source string (S-expression syntax)
        language: Language name (e.g., "python", "rust")

    Returns:
        Dictionary mapping capture names to lists of matching nodes.

    Example:
        >>> parser = create_parser("python")
        >>> tree = parser.parse(b"def foo(): pass")
        >>> captures = run_query(tree.root_node, "(function_definition name: (identifier) @name)", "python")
        >>> captures["name"][0].text
        b'foo'
    """
    key = (language, query_src)
    query = _query_cache.get(key)
    if query is None:
        query = Query(get_language(language), query_src)
        _query_cache[key] = query
    cursor = QueryCursor(query)
    return cursor.captures(node)
