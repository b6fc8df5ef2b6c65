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

"""Shared ignore patterns and path filtering logic for repository walking.

Rules:
- Hidden directories (starting with '.') are excluded by convention,
  which covers .git, .venv, .idea, .cache and the .context output directory
- Version-control directories are excluded even when hidden paths are allowed
- Non-hidden dependency and build directories are explicitly listed
"""

from pathlib import PurePath
from typing import Iterable, Optional, Set

# Default directories to skip (non-hidden only)
# Hidden directories (starting with '.') are excluded automatically by should_ignore_path()
DEFAULT_SKIP_DIRS: Set[str] = {
    # Python
    "__pycache__",
    "venv",
    "env",
    "site-packages",
    # Node.js
    "node_modules",
    # Build outputs
    "build",
    "dist",
    "target",
    "out",
    # Coverage
    "htmlcov",
}

VCS_DIRS: Set[str] = {".git", ".hg", ".svn", ".bzr", "_darcs"}


def is_hidden_path(path: PurePath) -> bool:
    """Check if any component of the path is hidden.

    Excludes '.' and '..' which are special directory entries.

    Args:
        path: Repository-relative path to check

    Returns:
        True if path contains any hidden component
    """
    for part in path.parts:
        if part.startswith(".") and part not in (".", ".."):
            return True
    return False


def should_ignore_path(
    path: PurePath,
    skip_dirs: Optional[Set[str]] = None,
    extra_skip_dirs: Optional[Iterable[str]] = None,
    include_hidden: bool = False,
) -> bool:
    """Check if a repository-relative path should be ignored during indexing.

    Args:
        path: Path relative to the repository root
        skip_dirs: Set of directory names to skip. Defaults to DEFAULT_SKIP_DIRS.
        extra_skip_dirs: Additional directory names to skip (merged with skip_dirs).
        include_hidden: Keep hidden components (VCS directories are still skipped)

    Returns:
        True if the path should be ignored

    Example:
        >>> from pathlib import PurePosixPath
        >>> should_ignore_path(PurePosixPath("src/main.py"))
        False
        >>> should_ignore_path(PurePosixPath(".git/config"))
        True
        >>> should_ignore_path(PurePosixPath("node_modules/lodash/index.js"))
        True
    """
    if any(part in VCS_DIRS for part in path.parts):
        return True

    if not include_hidden and is_hidden_path(path):
        return True

    effective_skip_dirs = get_effective_skip_dirs(skip_dirs, extra_skip_dirs)

    # The last component is the file name, only directories are matched
    return any(part in effective_skip_dirs for part in path.parts[:-1])


def get_effective_skip_dirs(
    base_skip_dirs: Optional[Set[str]] = None,
    extra_skip_dirs: Optional[Iterable[str]] = None,
) -> Set[str]:
    """Get the effective set of directories to skip.

    Args:
        base_skip_dirs: Base set of directories to skip. Defaults to DEFAULT_SKIP_DIRS.
        extra_skip_dirs: Additional directories to skip.

    Returns:
        Combined set of directory names to skip
    """
    effective = set(base_skip_dirs) if base_skip_dirs is not None else set(DEFAULT_SKIP_DIRS)
    if extra_skip_dirs:
        effective |= set(extra_skip_dirs)
    return effective
