"""
Betteh Music CMS - Upload Manager

Stores uploaded images under generated names in the uploads directory and
deletes them again when the owning record is removed or its image is
replaced.  The directory has no index of its own: the JSON store holds the
only references, so callers must release files explicitly.

Ordering rules followed by the admin routes:
    - A new file is saved *before* the store transaction and released again
      if the transaction aborts.
    - A superseded file is released only *after* the transaction persisted.
"""

import secrets
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile
from loguru import logger

from betteh_cms.errors import InvalidUpload, StorageFailure

# Attempts at finding an unused name before giving up
_MAX_NAME_ATTEMPTS = 5


def _validate_extension(filename: str, allowed: set) -> str:
    """Validate and return the lower-cased file extension."""
    ext = Path(filename).suffix.lower()
    if ext not in allowed:
        raise InvalidUpload(
            f"Invalid file type: {ext or 'none'}. Allowed: {', '.join(sorted(allowed))}"
        )
    return ext


def generate_filename(ext: str) -> str:
    """``<epoch-millis>-<random hex><ext>``."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"


class UploadManager:
    """Owns the uploads directory."""

    def __init__(self, directory: Path, allowed_extensions: set, max_bytes: int):
        self.directory = Path(directory)
        self.allowed_extensions = allowed_extensions
        self.max_bytes = max_bytes

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Resolve a stored filename; only bare names are accepted."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise InvalidUpload(f"Invalid stored filename: {filename!r}")
        return self.directory / filename

    async def save(self, data: bytes, original_name: str) -> str:
        """Write *data* under a fresh name and return that name."""
        ext = _validate_extension(original_name, self.allowed_extensions)
        if len(data) > self.max_bytes:
            raise InvalidUpload(
                f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB."
            )

        self.ensure_directory()
        for _ in range(_MAX_NAME_ATTEMPTS):
            filename = generate_filename(ext)
            path = self.directory / filename
            try:
                # "x" mode fails if the name is already taken
                async with aiofiles.open(path, "xb") as f:
                    await f.write(data)
            except FileExistsError:
                continue
            except OSError as e:
                await self._remove_quietly(path)
                raise StorageFailure(f"cannot write upload {filename}: {e}") from e

            logger.info("📤 Stored upload {} ({} bytes) from '{}'", filename, len(data), original_name)
            return filename

        raise StorageFailure("could not allocate a unique upload filename")

    async def save_upload(self, upload: Optional[UploadFile]) -> Optional[str]:
        """
        Save a multipart file field.

        Returns None when the form was submitted without choosing a file.
        """
        if upload is None or not upload.filename:
            return None

        # Reject bad extensions before reading the body
        _validate_extension(upload.filename, self.allowed_extensions)

        data = await upload.read(self.max_bytes + 1)
        if not data:
            return None
        return await self.save(data, upload.filename)

    async def release(self, filename: Optional[str]) -> bool:
        """Delete a stored file.  Missing files and empty references are no-ops."""
        if not filename:
            return False
        try:
            path = self.path_for(filename)
        except InvalidUpload:
            logger.warning("⚠️  Refusing to release suspicious filename {!r}", filename)
            return False

        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.debug("Upload {} already gone", filename)
            return False
        except OSError as e:
            raise StorageFailure(f"cannot delete upload {filename}: {e}") from e

        logger.info("🗑️  Released upload {}", filename)
        return True

    async def _remove_quietly(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
