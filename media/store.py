"""
media/store.py -- Disk storage for profile pictures.

Files land in Settings.upload_dir and are served by the static mount at
/uploads (api/main.py). A stored picture is named

    <username>_<unix-millis><ext>

and referenced from the user record as /uploads/<name>. Users without an upload
point at /uploads/default.jpg, a placeholder copied into upload_dir from
the package when the store is created.

Security:
  The username part is reduced to [A-Za-z0-9_.-] and leading dots are
  dropped, so a crafted username cannot write outside upload_dir.
  Only image extensions are accepted and reads stop at max_bytes + 1.
"""

from __future__ import annotations

import logging
import re
import shutil
import time
from pathlib import Path

from fastapi import UploadFile

from core.errors import ValidationError

logger = logging.getLogger("usermgmt.media")

PUBLIC_PREFIX = "/uploads"
DEFAULT_NAME = "default.jpg"
DEFAULT_PICTURE = f"{PUBLIC_PREFIX}/{DEFAULT_NAME}"
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
MSG_INVALID_PICTURE = "Invalid profile picture"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
_BUNDLED_DEFAULT = Path(__file__).with_name(DEFAULT_NAME)


def _safe_stem(username: str) -> str:
    stem = _UNSAFE_CHARS.sub("_", username).lstrip(".")
    return stem[:64] or "user"


class PictureStore:
    """Write uploaded pictures to a directory and hand back public references.

    Usage:
        pictures = PictureStore(Path("public/uploads"), max_bytes=2 * 1024 * 1024)
        ref = await pictures.save("alice", upload)   # "/uploads/alice_1718000000000.png"
        pictures.discard(ref)
    """

    def __init__(self, root: Path, max_bytes: int) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.root.mkdir(parents=True, exist_ok=True)
        self._seed_default()

    def _seed_default(self) -> None:
        """Put the shared placeholder picture in root unless one is already there."""
        target = self.root / DEFAULT_NAME
        if not target.exists():
            shutil.copyfile(_BUNDLED_DEFAULT, target)
            logger.info("Seeded default profile picture at %s", target)

    def filename_for(self, username: str, original_name: str) -> str:
        ext = Path(original_name).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(MSG_INVALID_PICTURE)
        return f"{_safe_stem(username)}_{int(time.time() * 1000)}{ext}"

    async def save(self, username: str, upload: UploadFile) -> str:
        """Store upload and return its public reference.

        Raises ValidationError for a disallowed extension, an empty file, or
        a file larger than max_bytes. Nothing is written in those cases.
        """
        name = self.filename_for(username, upload.filename or "")
        raw = await upload.read(self.max_bytes + 1)
        if not raw or len(raw) > self.max_bytes:
            raise ValidationError(MSG_INVALID_PICTURE)
        (self.root / name).write_bytes(raw)
        logger.info("Stored profile picture %s (%d bytes)", name, len(raw))
        return f"{PUBLIC_PREFIX}/{name}"

    def discard(self, reference: str) -> None:
        """Remove a picture previously returned by save().

        Unknown references and the shared default picture are ignored.
        """
        if reference == DEFAULT_PICTURE or not reference.startswith(PUBLIC_PREFIX + "/"):
            return
        name = Path(reference).name
        try:
            (self.root / name).unlink()
        except FileNotFoundError:
            return
        logger.info("Removed orphaned profile picture %s", name)
