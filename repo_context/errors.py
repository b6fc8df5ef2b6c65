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

"""Error taxonomy for the indexing engine.

Propagation policy:
    - ParseError: one file failed, recorded on its FileRecord, indexing continues
    - CorruptMetadata / SchemaMismatch: prior state discarded, full rebuild
    - StoreWriteError: fatal, surfaced to the caller
    - UnsupportedFile: not a failure, the file is skipped
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ContextError(Exception):
    """Base class for all indexing engine errors."""


class ParseError(ContextError):
    """A single file could not be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class CorruptMetadata(ContextError):
    """A persisted artifact is missing, unreadable or inconsistent."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


class SchemaMismatch(ContextError):
    """A persisted artifact was written by an incompatible index format."""

    def __init__(self, path: Union[str, Path], found: Optional[int], expected: int):
        super().__init__(f"{path}: schema version {found!r}, expected {expected}")
        self.path = str(path)
        self.found = found
        self.expected = expected


class StoreWriteError(ContextError):
    """Writing the index or metadata failed; the previous artifacts are intact."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class UnsupportedFile(ContextError, LookupError):
    """No language plugin handles this file."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(f"No language plugin for {path}")
        self.path = str(path)
