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

"""Persistence of the semantic index and change-detection metadata.

Layout under the repository root:

    .context/
        context.json   semantic index (public)
        meta.json      path -> fingerprint map (internal)

Output is byte-stable: fixed field order, two-space indentation,
UTF-8, trailing newline and no timestamps. Each file is replaced
atomically; the index is written before the metadata so a crash in
between leaves metadata that no longer matches the index, which the
next load detects.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from repo_context.config import IndexerConfig
from repo_context.errors import CorruptMetadata, SchemaMismatch, StoreWriteError
from repo_context.models import SCHEMA_VERSION, ContextIndex, RepoMetadata

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def render_json(data: Dict[str, Any], sort_keys: bool = False) -> str:
    """Serialize to the canonical on-disk form."""
    return json.dumps(data, indent=2, ensure_ascii=False, sort_keys=sort_keys) + "\n"


class ContextStore:
    """Reads and writes the reserved context directory of one repository."""

    def __init__(self, root: Union[str, Path], config: Optional[IndexerConfig] = None):
        self.root = Path(root)
        self.config = config or IndexerConfig()
        self.context_dir = self.root / self.config.context_dir

    @property
    def index_path(self) -> Path:
        return self.context_dir / self.config.index_file

    @property
    def meta_path(self) -> Path:
        return self.context_dir / self.config.meta_file

    def exists(self) -> bool:
        return self.meta_path.is_file() and self.index_path.is_file()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_model(self, path: Path, model: Type[ModelT]) -> ModelT:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise CorruptMetadata(path, "missing")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptMetadata(path, f"unreadable: {e}")

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptMetadata(path, f"invalid JSON: {e}")

        if not isinstance(raw, dict):
            raise CorruptMetadata(path, "expected a JSON object")

        found = raw.get("schema_version")
        if found != SCHEMA_VERSION:
            raise SchemaMismatch(path, found if isinstance(found, int) else None, SCHEMA_VERSION)

        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise CorruptMetadata(path, f"invalid structure: {e.error_count()} errors")

    def load_metadata(self) -> RepoMetadata:
        """Load change-detection metadata.

        Raises:
            CorruptMetadata: If the file is missing, unreadable or malformed
            SchemaMismatch: If it was written by another schema version
        """
        return self._load_model(self.meta_path, RepoMetadata)

    def load_index(self) -> ContextIndex:
        """Load the semantic index.

        Raises:
            CorruptMetadata: If the file is missing, unreadable or malformed
            SchemaMismatch: If it was written by another schema version
        """
        return self._load_model(self.index_path, ContextIndex)

    def load(self) -> Tuple[RepoMetadata, ContextIndex]:
        """Load metadata and index and check that they describe the same files.

        Returns:
            (RepoMetadata, ContextIndex)

        Raises:
            CorruptMetadata: If either artifact is bad or they disagree
            SchemaMismatch: If either artifact has another schema version
        """
        meta = self.load_metadata()
        index = self.load_index()

        indexed = {f.path: f.fingerprint for f in index.files}
        if indexed != meta.fingerprints:
            raise CorruptMetadata(self.meta_path, "does not match the stored index")

        known = {s.id for s in index.symbols}
        listed = [symbol_id for f in index.files for symbol_id in f.symbols]
        if len(listed) != len(known) or set(listed) != known:
            raise CorruptMetadata(self.index_path, "file symbol lists do not match symbols")

        return meta, index

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self, index: ContextIndex, meta: RepoMetadata) -> None:
        """Persist index, then metadata, each atomically.

        Raises:
            StoreWriteError: If either write fails; files already in place
                are left untouched by the failed write
        """
        try:
            self.context_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreWriteError(self.context_dir, str(e))

        self._write_atomic(self.index_path, render_json(index.model_dump(mode="json")))
        self._write_atomic(
            self.meta_path, render_json(meta.model_dump(mode="json"), sort_keys=True)
        )
        logger.debug(f"Wrote {self.index_path} and {self.meta_path}")

    def _write_atomic(self, path: Path, text: str) -> None:
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise StoreWriteError(path, str(e))

        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise StoreWriteError(path, str(e))
