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

"""Indexer configuration.

Defaults work without any configuration file. A repository can override
them with `.context/config.yaml`:

```yaml
extra_skip_dirs: [generated, fixtures]
strict_syntax: false
parallel_workers: 2
```
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Set, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from repo_context.codebase.ignore_patterns import DEFAULT_SKIP_DIRS

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yaml"


class IndexerConfig(BaseModel):
    """Configuration for a single indexing run."""

    context_dir: str = Field(
        default=".context", description="Reserved directory at the repository root"
    )
    index_file: str = Field(default="context.json", description="Semantic index file name")
    meta_file: str = Field(default="meta.json", description="Change-detection metadata file name")
    skip_dirs: Set[str] = Field(
        default_factory=lambda: set(DEFAULT_SKIP_DIRS),
        description="Directory names never descended into",
    )
    extra_skip_dirs: List[str] = Field(
        default_factory=list, description="Additional directory names to skip"
    )
    include_hidden: bool = Field(
        default=False, description="Index files under dot-directories (VCS dirs stay excluded)"
    )
    follow_symlinks: bool = Field(default=False, description="Follow symlinked files and dirs")
    max_file_size: Optional[int] = Field(
        default=2_000_000, description="Skip files larger than this many bytes (None = no limit)"
    )
    parallel_workers: int = Field(
        default=0, ge=0, description="Parser processes; 0 = auto (cpu count, capped at 4)"
    )
    parallel_threshold: int = Field(
        default=50, ge=1, description="Minimum files to parse before using the process pool"
    )
    parse_timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-file parse timeout in seconds (pool only)"
    )
    strict_syntax: bool = Field(
        default=True, description="Treat files with syntax errors as parse failures"
    )

    @property
    def effective_skip_dirs(self) -> Set[str]:
        return set(self.skip_dirs) | set(self.extra_skip_dirs) | {self.context_dir}

    @classmethod
    def load(cls, root: Union[str, Path], context_dir: str = ".context") -> "IndexerConfig":
        """Load configuration from `<root>/<context_dir>/config.yaml` if present.

        Args:
            root: Repository root
            context_dir: Reserved directory holding the config file

        Returns:
            Parsed configuration, or defaults when the file is missing or invalid
        """
        path = Path(root) / context_dir / CONFIG_FILE
        if not path.is_file():
            return cls(context_dir=context_dir)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read config from {path}: {e}")
            return cls(context_dir=context_dir)

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {path}: expected a mapping")
            return cls(context_dir=context_dir)

        data.setdefault("context_dir", context_dir)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid config in {path}, using defaults: {e}")
            return cls(context_dir=context_dir)
