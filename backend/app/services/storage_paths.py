"""
Agora Backend: Storage Path Resolver
=====================================

What:  Maps a logical file category to a physical directory, and a
       system-generated filename to an absolute path.
Why:   Every component that touches the upload volume (uploads, cascade
       deletes, the orphan sweeper) must agree on where a file lives.
How:   A frozen `StorageConfig` is passed in at construction. Resolution is
       a pure function of that configuration and the filename.

Directory Structure:
    <upload_root>/
    ├── profile/          avatars, referenced by users.avatar
    │   └── 9f1c0e....jpg
    └── posts/            post attachments, referenced by files.filename
        └── 4b7a2d....png

Path traversal:
    Filenames are opaque tokens generated here (uuid4 hex). `resolve()` still
    refuses anything that is not a single plain path segment, so a filename
    read back from the database can never point outside its category
    directory.
"""

import enum
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from app.exceptions import ValidationError


class FileCategory(str, enum.Enum):
    """Logical upload categories, each stored in its own directory."""

    AVATAR = "avatar"
    POST_ATTACHMENT = "post"


@dataclass(frozen=True)
class StorageConfig:
    """Upload root and per-category subdirectory names."""

    upload_root: str
    avatar_dir: str = "profile"
    post_dir: str = "posts"


class StoragePathResolver:
    """
    Resolves (category, filename) pairs to absolute paths.

    Only `ensure_directories()` touches the disk; everything else is pure.
    """

    def __init__(self, config: StorageConfig):
        self.config = config
        self.root = Path(config.upload_root).resolve()
        self._dirs = {
            FileCategory.AVATAR: self.root / config.avatar_dir,
            FileCategory.POST_ATTACHMENT: self.root / config.post_dir,
        }

    def categories(self) -> Iterator[FileCategory]:
        return iter(self._dirs)

    def directory(self, category: FileCategory) -> Path:
        return self._dirs[FileCategory(category)]

    def resolve(self, category: FileCategory, filename: str) -> Path:
        """
        Return the absolute path of `filename` inside the category directory.

        Raises:
            ValidationError: filename is empty, hidden, or not a single segment
        """
        if (
            not filename
            or filename.startswith(".")
            or "/" in filename
            or "\\" in filename
            or "\x00" in filename
        ):
            raise ValidationError(
                message="Invalid stored filename",
                field="filename",
                context={"filename": filename},
            )
        return self.directory(category) / filename

    @staticmethod
    def generate_filename(extension: str = "") -> str:
        """Opaque, collision-free token; never derived from user input."""
        if extension and not extension.startswith("."):
            extension = f".{extension}"
        return f"{uuid.uuid4().hex}{extension.lower()}"

    def ensure_directories(self) -> None:
        """Create the upload root and every category directory (idempotent)."""
        for path in self._dirs.values():
            path.mkdir(parents=True, exist_ok=True)
