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

"""Content-hash change detection.

Classifies the current file list against the stored fingerprints. Only
content matters: modification times, permissions and renames of
unrelated files never mark a file as modified.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from repo_context.codebase.walker import DiscoveredFile

logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX = "sha256:"


def compute_fingerprint(content: bytes) -> str:
    """Stable content fingerprint."""
    return FINGERPRINT_PREFIX + hashlib.sha256(content).hexdigest()


@dataclass
class ChangeSet:
    """Partition of the tracked files for one run.

    added/modified/unchanged/removed are disjoint and sorted by path.
    `fingerprints` covers every current file; `contents` holds the bytes
    of the files that must be parsed (added + modified).
    """

    added: List[DiscoveredFile] = field(default_factory=list)
    modified: List[DiscoveredFile] = field(default_factory=list)
    unchanged: List[DiscoveredFile] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    fingerprints: Dict[str, str] = field(default_factory=dict)
    contents: Dict[str, bytes] = field(default_factory=dict)

    @property
    def to_parse(self) -> List[DiscoveredFile]:
        """Added and modified files in path order."""
        return sorted(self.added + self.modified, key=lambda f: f.path)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)


def detect_changes(
    root: Path,
    files: Sequence[DiscoveredFile],
    previous: Mapping[str, str],
) -> ChangeSet:
    """Compare current files against stored fingerprints.

    Args:
        root: Repository root
        files: Current files from the walker
        previous: Stored path -> fingerprint map (empty for a full build)

    Returns:
        ChangeSet; files that cannot be read are left out of every set,
        so they are treated as removed if they were tracked before
    """
    changes = ChangeSet()
    current: Dict[str, DiscoveredFile] = {}

    for discovered in files:
        try:
            content = (Path(root) / discovered.path).read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read {discovered.path}, skipping: {e}")
            continue

        fingerprint = compute_fingerprint(content)
        current[discovered.path] = discovered
        changes.fingerprints[discovered.path] = fingerprint

        old = previous.get(discovered.path)
        if old is None:
            changes.added.append(discovered)
            changes.contents[discovered.path] = content
        elif old != fingerprint:
            changes.modified.append(discovered)
            changes.contents[discovered.path] = content
        else:
            changes.unchanged.append(discovered)

    changes.removed = sorted(path for path in previous if path not in current)

    logger.debug(
        f"Changes: {len(changes.added)} added, {len(changes.modified)} modified, "
        f"{len(changes.removed)} removed, {len(changes.unchanged)} unchanged"
    )
    return changes
