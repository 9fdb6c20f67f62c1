"""Local storage for WhatsApp media attachments."""

import asyncio
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path

from app.settings import settings

logger = logging.getLogger(__name__)

SAFE_FILENAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")
UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")

# Preferred extension per content type; anything else falls back to mimetypes
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "video/mp4": "mp4",
    "video/3gpp": "3gp",
    "application/pdf": "pdf",
}
EXTENSION_CONTENT_TYPES = {ext: ctype for ctype, ext in CONTENT_TYPE_EXTENSIONS.items()}


class MediaStorageError(Exception):
    """Invalid media filename or unreadable media."""
    pass


@dataclass(frozen=True)
class StoredMedia:
    """A media file written to the media directory."""

    filename: str
    kind: str  # image, audio, video, document, sticker
    url: str


def classify_media_kind(mimetype: str | None, message_type: str | None = None) -> str:
    """Map a declared content type to a media kind.

    Args:
        mimetype: Content type reported by the transport
        message_type: Transport message type ("sticker" is kept distinct)

    Returns:
        image, audio, video, sticker or document (the default)
    """
    if message_type == "sticker":
        return "sticker"
    base = (mimetype or "").split(";")[0].strip().lower()
    if base.startswith("image/"):
        return "image"
    if base.startswith("audio/"):
        return "audio"
    if base.startswith("video/"):
        return "video"
    return "document"


def extension_for(mimetype: str | None) -> str:
    """File extension (without dot) for a content type."""
    base = (mimetype or "").split(";")[0].strip().lower()
    if base in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[base]
    guessed = mimetypes.guess_extension(base) if base else None
    return guessed.lstrip(".") if guessed else "bin"


def content_type_for(filename: str) -> str:
    """Content type derived from a filename's extension."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension in EXTENSION_CONTENT_TYPES:
        return EXTENSION_CONTENT_TYPES[extension]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def is_safe_filename(filename: str) -> bool:
    return bool(SAFE_FILENAME_RE.match(filename)) and ".." not in filename


class MediaStorage:
    """Append-only media directory.

    Filenames are `{timestamp_ms}_{message_id}.{ext}`, so two writers never
    target the same path.
    """

    def __init__(self, media_dir: str | None = None, url_prefix: str | None = None):
        self.media_dir = Path(media_dir or settings.whatsapp_media_dir)
        self.url_prefix = url_prefix or f"{settings.api_v1_prefix}/whatsapp/media"

    def build_filename(self, message_id: str, timestamp_ms: int, mimetype: str | None) -> str:
        safe_id = UNSAFE_CHARS_RE.sub("_", message_id)[:100] or "media"
        return f"{timestamp_ms}_{safe_id}.{extension_for(mimetype)}"

    async def save(
        self,
        message_id: str,
        timestamp_ms: int,
        data: bytes,
        mimetype: str | None,
        message_type: str | None = None,
    ) -> StoredMedia:
        """Write media bytes and return the retrieval reference.

        Raises:
            OSError: If the file cannot be written
        """
        filename = self.build_filename(message_id, timestamp_ms, mimetype)
        path = self.media_dir / filename
        await asyncio.to_thread(self._write, path, data)
        logger.info(f"Saved WhatsApp media {filename} ({len(data)} bytes)")
        return StoredMedia(
            filename=filename,
            kind=classify_media_kind(mimetype, message_type),
            url=f"{self.url_prefix}/{filename}",
        )

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def resolve(self, filename: str) -> tuple[Path, str]:
        """Locate a stored file by name.

        Returns:
            (path, content_type)

        Raises:
            MediaStorageError: If the filename has characters outside [A-Za-z0-9._-]
            FileNotFoundError: If no such file exists
        """
        if not is_safe_filename(filename):
            raise MediaStorageError(f"Invalid media filename: {filename!r}")
        path = self.media_dir / filename
        if not path.is_file():
            raise FileNotFoundError(filename)
        return path, content_type_for(filename)
