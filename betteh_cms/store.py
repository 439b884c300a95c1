"""
Betteh Music CMS - Flat-file JSON Store

The whole site lives in one JSON document.  Every mutating request runs
load → mutate → persist inside ``JsonStore.transaction()``, which holds a
single-writer lock for the duration so overlapping admin requests cannot
lose each other's updates.

Writes go to a temp file in the same directory and are renamed over the
target with ``os.replace``, so a crash mid-write leaves the previous
document intact and lock-free readers never observe a partial file.
"""

import asyncio
import json
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from loguru import logger
from pydantic import ValidationError

from betteh_cms.auth import hash_password
from betteh_cms.errors import StorageFailure
from betteh_cms.models import Admin, Document


class JsonStore:
    """Single JSON document on disk, shared by every request handler."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Sync primitives
    # ------------------------------------------------------------------
    def load(self) -> Document:
        """Read the document, or return an empty one if no file exists yet."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Document()
        except OSError as e:
            raise StorageFailure(f"cannot read {self.path}: {e}") from e

        if not raw.strip():
            return Document()

        try:
            return Document.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageFailure(f"invalid document in {self.path}: {e}") from e

    def persist(self, document: Document) -> None:
        """Atomically replace the backing file with *document*."""
        payload = document.to_json()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.remove(tmp_name)
            except FileNotFoundError:
                pass
            raise StorageFailure(f"cannot write {self.path}: {e}") from e

    # ------------------------------------------------------------------
    # Async API used by the route handlers
    # ------------------------------------------------------------------
    async def read(self) -> Document:
        """Load a snapshot for read-only use.  Does not take the write lock."""
        return await asyncio.to_thread(self.load)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Document]:
        """
        Serialized load → mutate → persist.

        The yielded document is mutated in place and persisted when the
        block exits normally.  If the block raises, nothing is written.
        """
        async with self._lock:
            document = await asyncio.to_thread(self.load)
            yield document
            await asyncio.to_thread(self.persist, document)

    async def initialize(self, username: str = "", password: str = "") -> bool:
        """
        Seed the first admin from bootstrap credentials.

        Only acts when the document has no admins and both credentials are
        non-empty.  Returns True if an admin was created.
        """
        async with self.transaction() as document:
            if document.admins:
                return False
            if not (username and password):
                logger.warning(
                    "⚠️  No admins exist and no bootstrap credentials were given "
                    "— visit /setup to create the first admin"
                )
                return False

            password_hash = await asyncio.to_thread(hash_password, password)
            document.admins.append(
                Admin(username=username, password_hash=password_hash)
            )

        logger.success("✅ Seeded bootstrap admin '{}'", username)
        return True
