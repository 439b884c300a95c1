"""
Betteh Music CMS - Upload Manager Tests

Tests for betteh_cms/uploads.py. Validates:
- Generated names keep the (lower-cased) extension and never collide
- Disallowed extensions and oversize files are rejected
- Empty multipart fields are treated as "no file"
- release() is idempotent and refuses path-like names
"""

import asyncio
import io

import pytest
from fastapi import UploadFile

from betteh_cms.errors import InvalidUpload
from betteh_cms.uploads import UploadManager, generate_filename
from tests.conftest import PNG_BYTES, stored_files

# ===========================================================================
# save
# ===========================================================================


class TestSave:
    """Test writing uploaded bytes to disk."""

    def test_writes_bytes(self, uploads, upload_dir):
        name = asyncio.run(uploads.save(PNG_BYTES, "cover.png"))
        assert (upload_dir / name).read_bytes() == PNG_BYTES

    def test_preserves_extension_lowercased(self, uploads):
        name = asyncio.run(uploads.save(PNG_BYTES, "Cover.JPG"))
        assert name.endswith(".jpg")

    def test_does_not_reuse_original_name(self, uploads):
        name = asyncio.run(uploads.save(PNG_BYTES, "cover.png"))
        assert name != "cover.png"

    def test_names_are_unique(self, uploads, upload_dir):
        async def run():
            return [await uploads.save(PNG_BYTES, "same.png") for _ in range(10)]

        names = asyncio.run(run())
        assert len(set(names)) == 10
        assert stored_files(upload_dir) == sorted(names)

    def test_creates_directory(self, uploads, upload_dir):
        assert not upload_dir.exists()
        asyncio.run(uploads.save(PNG_BYTES, "a.png"))
        assert upload_dir.is_dir()

    def test_rejects_disallowed_extension(self, uploads, upload_dir):
        with pytest.raises(InvalidUpload):
            asyncio.run(uploads.save(b"MZ", "payload.exe"))
        assert stored_files(upload_dir) == []

    def test_rejects_missing_extension(self, uploads):
        with pytest.raises(InvalidUpload):
            asyncio.run(uploads.save(PNG_BYTES, "noext"))

    def test_rejects_oversize(self, upload_dir):
        small = UploadManager(upload_dir, {".png"}, max_bytes=10)
        with pytest.raises(InvalidUpload):
            asyncio.run(small.save(b"\x00" * 11, "big.png"))
        assert stored_files(upload_dir) == []

    def test_retries_on_collision(self, uploads, upload_dir, monkeypatch):
        upload_dir.mkdir()
        (upload_dir / "taken.png").write_bytes(b"old")
        names = iter(["taken.png", "free.png"])
        monkeypatch.setattr("betteh_cms.uploads.generate_filename", lambda ext: next(names))

        name = asyncio.run(uploads.save(PNG_BYTES, "new.png"))
        assert name == "free.png"
        assert (upload_dir / "taken.png").read_bytes() == b"old"


class TestGenerateFilename:
    def test_format(self):
        name = generate_filename(".png")
        stamp, rest = name.split("-", 1)
        assert stamp.isdigit()
        assert rest.endswith(".png")
        assert len(rest) == len("0123456789ab.png")


# ===========================================================================
# save_upload
# ===========================================================================


class TestSaveUpload:
    """Test the UploadFile adapter."""

    def test_none_field(self, uploads):
        assert asyncio.run(uploads.save_upload(None)) is None

    def test_empty_filename(self, uploads):
        upload = UploadFile(file=io.BytesIO(b""), filename="")
        assert asyncio.run(uploads.save_upload(upload)) is None

    def test_empty_body(self, uploads, upload_dir):
        upload = UploadFile(file=io.BytesIO(b""), filename="blank.png")
        assert asyncio.run(uploads.save_upload(upload)) is None
        assert stored_files(upload_dir) == []

    def test_saves_file(self, uploads, upload_dir):
        upload = UploadFile(file=io.BytesIO(PNG_BYTES), filename="photo.png")
        name = asyncio.run(uploads.save_upload(upload))
        assert (upload_dir / name).read_bytes() == PNG_BYTES

    def test_rejects_bad_extension(self, uploads):
        upload = UploadFile(file=io.BytesIO(b"<?php"), filename="shell.php")
        with pytest.raises(InvalidUpload):
            asyncio.run(uploads.save_upload(upload))


# ===========================================================================
# release
# ===========================================================================


class TestRelease:
    """Test deleting stored files."""

    def test_deletes_file(self, uploads, upload_dir):
        name = asyncio.run(uploads.save(PNG_BYTES, "a.png"))
        assert asyncio.run(uploads.release(name)) is True
        assert stored_files(upload_dir) == []

    def test_missing_file_is_noop(self, uploads):
        assert asyncio.run(uploads.release("1700000000000-abcdef123456.png")) is False

    def test_twice_is_safe(self, uploads):
        name = asyncio.run(uploads.save(PNG_BYTES, "a.png"))
        assert asyncio.run(uploads.release(name)) is True
        assert asyncio.run(uploads.release(name)) is False

    def test_empty_reference_is_noop(self, uploads):
        assert asyncio.run(uploads.release("")) is False
        assert asyncio.run(uploads.release(None)) is False

    @pytest.mark.parametrize("name", ["../db.json", "sub/file.png", "..", "/etc/passwd"])
    def test_refuses_path_like_names(self, uploads, tmp_path, name):
        (tmp_path / "db.json").write_text("{}", encoding="utf-8")
        assert asyncio.run(uploads.release(name)) is False
        assert (tmp_path / "db.json").exists()
