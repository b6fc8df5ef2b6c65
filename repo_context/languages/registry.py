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

"""Language plugin registry.

Maps file extensions and names to language plugins. The walker uses it
to decide which files are indexed; the extractor and resolver use it to
route each file to its plugin.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import Callable, Dict, List, Optional, Type, Union

from repo_context.errors import UnsupportedFile
from repo_context.languages.base import LanguagePlugin

logger = logging.getLogger(__name__)

# Type alias for plugin factory
PluginFactory = Callable[[], LanguagePlugin]


class LanguageRegistry:
    """Registry for language plugins.

    Provides:
    - Plugin registration by name/extension
    - Language detection from file paths
    - Discovery of the built-in plugins
    """

    def __init__(self):
        """Initialize empty registry."""
        self._plugins: Dict[str, PluginFactory] = {}
        self._instances: Dict[str, LanguagePlugin] = {}
        self._extension_map: Dict[str, str] = {}  # .py -> python
        self._alias_map: Dict[str, str] = {}  # py -> python

    @classmethod
    def with_builtin_plugins(cls) -> "LanguageRegistry":
        """Create a registry with the Python and Rust plugins registered."""
        registry = cls()
        registry.discover_plugins()
        return registry

    def register(
        self,
        name: str,
        plugin: Union[Type[LanguagePlugin], PluginFactory],
        extensions: Optional[List[str]] = None,
        aliases: Optional[List[str]] = None,
    ) -> None:
        """Register a language plugin.

        Args:
            name: Canonical language name
            plugin: Plugin class or factory function
            extensions: File extensions (taken from the plugin config if None)
            aliases: Alternative names for the language
        """
        name = name.lower()

        self._plugins[name] = plugin
        self._instances.pop(name, None)
        logger.debug(f"Registered language plugin: {name}")

        # Create instance to get config
        instance = self._get_or_create_instance(name)

        exts = extensions or instance.config.extensions
        for ext in exts:
            ext = ext.lower()
            if not ext.startswith("."):
                ext = "." + ext
            self._extension_map[ext] = name

        for alias in (aliases or []) + instance.config.aliases:
            self._alias_map[alias.lower()] = name

    def get(self, name: str) -> LanguagePlugin:
        """Get a language plugin by name.

        Args:
            name: Language name or alias

        Returns:
            Language plugin instance

        Raises:
            KeyError: If language not registered
        """
        name = self._resolve_name(name)
        return self._get_or_create_instance(name)

    def detect_language(self, path: PurePath) -> Optional[str]:
        """Detect language from a file path.

        Args:
            path: File path to check

        Returns:
            Language name or None if no plugin handles the file
        """
        ext = path.suffix.lower()
        if ext in self._extension_map:
            return self._extension_map[ext]

        for name in sorted(self._plugins):
            plugin = self._get_or_create_instance(name)
            if plugin.detect_from_file(Path(path)):
                return name

        return None

    def plugin_for(self, path: PurePath) -> LanguagePlugin:
        """Get the plugin handling a file.

        Raises:
            UnsupportedFile: If no registered plugin handles the file
        """
        name = self.detect_language(path)
        if name is None:
            raise UnsupportedFile(path)
        return self._get_or_create_instance(name)

    def has(self, name: str) -> bool:
        try:
            self._resolve_name(name)
            return True
        except KeyError:
            return False

    def list_languages(self) -> List[str]:
        """List all registered language names, sorted."""
        return sorted(self._plugins.keys())

    def get_extensions(self, name: str) -> List[str]:
        """Get file extensions for a language."""
        name = self._resolve_name(name)
        plugin = self._get_or_create_instance(name)
        return plugin.config.extensions

    def _resolve_name(self, name: str) -> str:
        """Resolve alias to canonical name."""
        name = name.lower()

        if name in self._alias_map:
            return self._alias_map[name]

        if name in self._plugins:
            return name

        available = ", ".join(sorted(self._plugins.keys()))
        raise KeyError(f"Language '{name}' not registered. Available: {available}")

    def _get_or_create_instance(self, name: str) -> LanguagePlugin:
        """Get or create plugin instance."""
        if name not in self._instances:
            factory = self._plugins[name]
            self._instances[name] = factory()
        return self._instances[name]

    def discover_plugins(self) -> int:
        """Register the built-in plugins.

        Returns:
            Number of plugins registered
        """
        from repo_context.languages.plugins import PythonPlugin, RustPlugin

        plugins = [
            ("python", PythonPlugin),
            ("rust", RustPlugin),
        ]

        for name, plugin_class in plugins:
            self.register(name, plugin_class)

        logger.debug(f"Discovered {len(plugins)} language plugins")
        return len(plugins)
