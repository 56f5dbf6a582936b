"""
tests/test_picture_store.py -- Unit tests for media/store.py.

Covers:
  - saved file lands under the root and is referenced as /uploads/<name>
  - name format <username>_<millis><ext> with a sanitized username
  - disallowed extension, empty file and oversize file are rejected unwritten
  - discard() removes stored files and ignores unknown references
  - the shared default picture is seeded once and never discarded
"""

from __future__ import annotations

import asyncio
import io
import re

import pytest
from fastapi import UploadFile

from auth.models import DEFAULT_PROFILE_PICTURE
from core.errors import ValidationError
from media.store import DEFAULT_NAME, DEFAULT_PICTURE, PUBLIC_PREFIX, PictureStore


def _upload(data: bytes, filename: str) -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


def _save(pictures: PictureStore, username: str, upload: UploadFile) -> str:
    return asyncio.run(pictures.save(username, upload))


def _uploaded(pictures: PictureStore) -> list[str]:
    return sorted(p.name for p in pictures.root.iterdir() if p.name != DEFAULT_NAME)


class TestSave:
    def test_saved_file_is_written_and_referenced(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "alice", _upload(b"\x89PNG-data", "me.png"))
        assert ref.startswith(PUBLIC_PREFIX + "/")
        stored = pictures.root / ref.rsplit("/", 1)[1]
        assert stored.read_bytes() == b"\x89PNG-data"

    def test_name_format(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "alice", _upload(b"img", "Holiday.JPG"))
        assert re.fullmatch(r"/uploads/alice_\d{13}\.jpg", ref)

    def test_username_is_sanitized(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "../../etc/passwd", _upload(b"img", "x.gif"))
        name = ref.rsplit("/", 1)[1]
        assert "/" not in name
        assert not name.startswith(".")
        assert (pictures.root / name).exists()

    def test_exactly_max_bytes_is_accepted(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "bob", _upload(b"x" * pictures.max_bytes, "big.webp"))
        assert ref.endswith(".webp")


class TestRejections:
    @pytest.mark.parametrize("filename", ["notes.txt", "script.php", "noext", "image.png.exe"])
    def test_disallowed_extension(self, pictures: PictureStore, filename: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _save(pictures, "alice", _upload(b"data", filename))
        assert exc_info.value.message == "Invalid profile picture"
        assert _uploaded(pictures) == []

    def test_empty_file(self, pictures: PictureStore) -> None:
        with pytest.raises(ValidationError):
            _save(pictures, "alice", _upload(b"", "empty.png"))
        assert _uploaded(pictures) == []

    def test_oversize_file(self, pictures: PictureStore) -> None:
        with pytest.raises(ValidationError):
            _save(pictures, "alice", _upload(b"x" * (pictures.max_bytes + 1), "huge.png"))
        assert _uploaded(pictures) == []


class TestDiscard:
    def test_discard_removes_file(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "alice", _upload(b"img", "a.png"))
        pictures.discard(ref)
        assert _uploaded(pictures) == []

    def test_discard_twice_is_harmless(self, pictures: PictureStore) -> None:
        ref = _save(pictures, "alice", _upload(b"img", "a.png"))
        pictures.discard(ref)
        pictures.discard(ref)

    def test_discard_ignores_foreign_references(self, pictures: PictureStore, tmp_path) -> None:
        outside = tmp_path / "keep.png"
        outside.write_bytes(b"keep")
        pictures.discard(str(outside))
        pictures.discard("https://example.com/a.png")
        assert outside.exists()


class TestDefaultPicture:
    def test_default_reference_matches_user_default(self) -> None:
        assert DEFAULT_PICTURE == DEFAULT_PROFILE_PICTURE

    def test_default_is_seeded_as_jpeg(self, pictures: PictureStore) -> None:
        seeded = pictures.root / DEFAULT_NAME
        assert seeded.read_bytes()[:2] == b"\xff\xd8"

    def test_existing_default_is_kept(self, tmp_path) -> None:
        root = tmp_path / "custom"
        root.mkdir()
        (root / DEFAULT_NAME).write_bytes(b"site-specific")
        PictureStore(root, max_bytes=1024)
        assert (root / DEFAULT_NAME).read_bytes() == b"site-specific"

    def test_discard_never_removes_default(self, pictures: PictureStore) -> None:
        pictures.discard(DEFAULT_PICTURE)
        assert (pictures.root / DEFAULT_NAME).exists()
