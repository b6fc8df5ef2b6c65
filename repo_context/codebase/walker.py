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

"""Repository walker.

Enumerates source files under a root, pruning ignored directories while
descending, and returns them sorted by repository-relative path so every
later stage sees the same order on every run and platform.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional

from repo_context.codebase.ignore_patterns import should_ignore_path
from repo_context.config import IndexerConfig
from repo_context.languages.registry import LanguageRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredFile:
    """A source file the indexer will track."""

    path: str  # repository-relative, forward slashes
    language: str


def discover_source_files(
    root: Path,
    registry: LanguageRegistry,
    config: Optional[IndexerConfig] = None,
) -> List[DiscoveredFile]:
    """Find every supported source file under root.

    Args:
        root: Repository root
        registry: Registry deciding which files have a language plugin
        config: Skip rules; defaults to IndexerConfig()

    Returns:
        Files sorted by relative path (byte order of the POSIX string)
    """
    config = config or IndexerConfig()
    skip_dirs = config.effective_skip_dirs
    root = Path(root)
    found: List[DiscoveredFile] = []

    for dirpath, dirnames, filenames in os.walk(root, followlinks=config.follow_symlinks):
        rel_dir = PurePosixPath(Path(dirpath).relative_to(root).as_posix())

        # Prune in place so ignored trees are never entered
        kept = []
        for name in dirnames:
            # Placeholder file name so the directory itself is matched as a parent
            rel = rel_dir / name / "_"
            if should_ignore_path(rel, skip_dirs=skip_dirs, include_hidden=config.include_hidden):
                continue
            if not config.follow_symlinks and os.path.islink(os.path.join(dirpath, name)):
                continue
            kept.append(name)
        dirnames[:] = sorted(kept)

        for name in filenames:
            rel = rel_dir / name
            if should_ignore_path(rel, skip_dirs=skip_dirs, include_hidden=config.include_hidden):
                continue

            full = os.path.join(dirpath, name)
            if not config.follow_symlinks and os.path.islink(full):
                continue
            if not os.path.isfile(full):
                continue

            language = registry.detect_language(rel)
            if language is None:
                continue

            if config.max_file_size is not None:
                try:
                    size = os.path.getsize(full)
                except OSError as e:
                    logger.warning(f"Cannot stat {rel}: {e}")
                    continue
                if size > config.max_file_size:
                    logger.debug(f"Skipping {rel}: {size} bytes exceeds max_file_size")
                    continue

            found.append(DiscoveredFile(path=rel.as_posix(), language=language))

    found.sort(key=lambda f: f.path)
    logger.debug(f"Discovered {len(found)} source files under {root}")
    return found
