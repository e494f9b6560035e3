"""
Agora Backend: File Storage Service
====================================

What:  Validates, writes, lists and removes physical upload files.
Why:   Centralizes every filesystem operation on the upload volume behind
       the storage path resolver, so no other module builds a path.
How:   Validates extension, size and MIME type; writes under a generated
       opaque filename with async I/O; removes files best-effort.
Who:   Used by the association service (post attachments), UserService
       (avatars), the cascade deletion service and the orphan sweeper.

Security Model:
    1. Extension check:   fast first rejection, before reading content
    2. Size check:        Content-Length first, then the actual byte count
    3. MIME type check:   python-magic inspects the header bytes, so a
                          renamed file is caught
    4. Opaque filename:   the stored name is a uuid token plus the extension
                          implied by the DETECTED type; no user text reaches
                          the path

Removal semantics:
    `remove_file()` never raises. The database is the source of truth; by the
    time a file is removed its row is already gone. A file that is already
    absent is the desired end state (debug log, no warning). Any other OS
    error becomes a `StorageCleanupWarning` returned to the caller and logged;
    the orphan sweeper reclaims the file later.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

import aiofiles
import aiofiles.os

from app.config import settings
from app.exceptions import FileStorageError, StorageCleanupWarning, ValidationError
from app.services.storage_paths import FileCategory, StoragePathResolver

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# What: Detected MIME type → extension used for the stored filename
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

MimeDetector = Callable[[bytes], str]


def detect_mime_type(content: bytes) -> str:
    """Inspect the leading bytes with libmagic."""
    import magic

    return magic.from_buffer(content, mime=True)


class FileService:
    """
    Physical file operations for every upload category.

    Lifecycle of an uploaded file:
        1. validate_upload() rejects bad extension, size or content type
        2. write_file() stores it as <category dir>/<token><ext>
        3. The caller records the filename in the database
        4. remove_file() deletes it once the database no longer references it
    """

    def __init__(
        self,
        resolver: StoragePathResolver,
        max_file_size: int = settings.max_file_size,
        mime_detector: Optional[MimeDetector] = None,
    ):
        """
        Args:
            resolver: Maps (category, filename) to absolute paths
            max_file_size: Upper bound in bytes for uploads
            mime_detector: Override content sniffing (tests pass a stub)
        """
        self.resolver = resolver
        self.max_file_size = max_file_size
        self.mime_detector = mime_detector or detect_mime_type

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Check the client-supplied filename extension (first line of defense).

        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Checks Content-Length first (may be None or inaccurate), then the
        actual size. Empty files are rejected.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="The uploaded file is empty.", field="file")

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, content: bytes) -> str:
        """
        Detect the real content type from the file's magic bytes.

        Returns: Detected MIME type (e.g. "image/png")
        Raises:
            ValidationError: content is not PNG or JPEG
            FileStorageError: detection itself failed
        """
        try:
            mime_type = self.mime_detector(content)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def validate_upload(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Run every check, cheapest first. Returns the detected MIME type.

        `filename` is optional: avatars arrive as raw bytes without a name,
        in which case only size and content are checked.
        """
        if filename is not None:
            self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        return self.validate_mime_type(content)

    # ── Disk Operations ───────────────────────────────────────────────────

    async def write_file(self, category: FileCategory, content: bytes, mime_type: str) -> str:
        """
        Write already-validated content under a new opaque filename.

        Returns: The generated filename (what the database stores).
        Raises:  FileStorageError if the write fails; a partial file is removed.
        """
        filename = self.resolver.generate_filename(ALLOWED_MIME_TYPES.get(mime_type, ""))
        path = self.resolver.resolve(category, filename)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store %s file at %s: %s", category.value, path, str(e))
            await self.remove_file(category, filename)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"category": category.value, "os_error": str(e)},
            )

        logger.info("File stored: %s/%s (%d bytes)", category.value, filename, len(content))
        return filename

    async def remove_file(
        self, category: FileCategory, filename: str
    ) -> Optional[StorageCleanupWarning]:
        """
        Best-effort removal of one physical file.

        Returns:
            None when the file is gone (removed now, or already absent),
            otherwise a StorageCleanupWarning describing the failure.
        """
        try:
            path = self.resolver.resolve(category, filename)
        except ValidationError:
            warning = StorageCleanupWarning(category.value, filename, "invalid stored filename")
            logger.warning(warning.message)
            return warning

        try:
            await aiofiles.os.remove(path)
            logger.info("Removed %s file: %s", category.value, filename)
            return None
        except FileNotFoundError:
            logger.debug("Cleanup: %s file already gone: %s", category.value, filename)
            return None
        except OSError as e:
            warning = StorageCleanupWarning(category.value, filename, str(e))
            logger.warning(warning.message)
            return warning

    async def list_files(self, category: FileCategory) -> List[str]:
        """
        Names of the stored files currently in a category directory.

        Only regular files whose names `resolve` accepts are listed. Hidden
        entries (`.gitkeep`, editor or partial-write leftovers) are never
        stored names, so they are skipped rather than reported on every sweep.
        """
        directory = self.resolver.directory(category)
        try:
            names = await aiofiles.os.listdir(directory)
        except FileNotFoundError:
            return []

        files = []
        for name in names:
            try:
                path = self.resolver.resolve(category, name)
            except ValidationError:
                logger.debug("Skipping non-stored entry in %s: %s", category.value, name)
                continue
            if await aiofiles.os.path.isfile(path):
                files.append(name)
        return sorted(files)

    async def exists(self, category: FileCategory, filename: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolver.resolve(category, filename))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService(StoragePathResolver(settings.storage_config()))
