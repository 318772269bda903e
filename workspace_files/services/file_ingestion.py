"""
File ingestion pipeline.

Turns local bytes into a canonical upload payload:
- Classification (text vs binary, by extension only)
- MIME type lookup
- SHA-256 checksum and size over the raw bytes
- TTL validation and tag parsing

Everything here is local computation; nothing touches the network.
"""

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import NamedTuple

from workspace_files.core.auth import Caller
from workspace_files.core.exceptions import FileReadError
from workspace_files.core.expiry import bounds_check
from workspace_files.models.contracts.file import UploadPayload
from workspace_files.models.enums import FileKind

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Sent as-is; everything else travels base64 encoded.
TEXT_EXTENSIONS = frozenset({".txt", ".md"})

MIME_TYPES: dict[str, str] = {
    # Text files
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".xml": "application/xml",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".ts": "application/typescript",
    # Documents
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    # Video
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    # Archives
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    # Other
    ".bin": "application/octet-stream",
    ".exe": "application/x-msdownload",
    ".sh": "application/x-sh",
}


class Digest(NamedTuple):
    """Checksum and size of a byte sequence."""

    checksum: str
    size: int


@dataclass
class UploadOptions:
    """
    Caller-supplied upload metadata.

    Attributes:
        expire: TTL in minutes, validated against the expiry bounds
        description: Optional free-text description
        tags: Optional comma-joined tag string
        project_id: Optional project ID (short or full form)
        is_public: Flag stored with the file
    """

    expire: int
    description: str | None = None
    tags: str | None = None
    project_id: str | None = None
    is_public: bool = False


def _extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def classify(filename: str) -> FileKind:
    """
    Decide whether a file's bytes travel as text or as base64.

    Only the lower-cased extension matters. Unknown extensions are binary.
    """
    if _extension(filename) in TEXT_EXTENSIONS:
        return FileKind.TEXT
    return FileKind.BINARY


def guess_content_type(filename: str) -> str:
    """
    Guess content type from filename.

    Args:
        filename: File name with extension

    Returns:
        MIME type string (defaults to 'application/octet-stream' if unknown)
    """
    return MIME_TYPES.get(_extension(filename), DEFAULT_CONTENT_TYPE)


def digest(data: bytes) -> Digest:
    """
    Compute SHA-256 hash and size of content.

    Args:
        data: Raw file bytes (never the base64 envelope)

    Returns:
        Digest with hex checksum and byte count
    """
    return Digest(checksum=hashlib.sha256(data).hexdigest(), size=len(data))


def clean_tags(tags: list[str]) -> list[str]:
    """Trim each tag and drop empties. Order and duplicates are kept."""
    return [tag.strip() for tag in tags if tag.strip()]


def split_tags(tags: str | None) -> list[str] | None:
    """Split a comma-joined tag string into cleaned tags."""
    if tags is None:
        return None
    return clean_tags(tags.split(","))


def encode_content(data: bytes, kind: FileKind, filename: str = "<bytes>") -> str:
    """Encode raw bytes for a payload according to their classification."""
    if kind is FileKind.TEXT:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FileReadError(filename, f"not valid UTF-8 text: {e.reason}") from e
    return base64.b64encode(data).decode("ascii")


def decode_content(content: str, base64_encoded: bool) -> bytes:
    """
    Recover the original bytes from a stored or downloaded payload.

    Raises:
        ValueError: If a base64 envelope is malformed
    """
    if base64_encoded:
        try:
            return base64.b64decode(content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Malformed base64 content: {e}") from e
    return content.encode("utf-8")


def prepare_upload(
    data: bytes,
    filename: str,
    remote_path: str,
    options: UploadOptions,
    caller: Caller,
    last_modified: datetime | None = None,
) -> UploadPayload:
    """
    Compose classification, digest and metadata into an upload payload.

    Args:
        data: Raw bytes read from local storage
        filename: Name used for classification and content type
        remote_path: Destination path in the workspace
        options: Caller-supplied metadata (TTL, description, tags, project)
        caller: Acting identity recorded as the creator
        last_modified: Optional mtime of the source file

    Returns:
        UploadPayload ready to send

    Raises:
        TTLOutOfRangeError: If ``options.expire`` is out of bounds
        FileReadError: If a text-classified file is not valid UTF-8
    """
    bounds_check(options.expire)

    kind = classify(filename)
    content = encode_content(data, kind, filename)
    checksum, size = digest(data)

    return UploadPayload(
        path=remote_path,
        filename=filename,
        content=content,
        base64_encoded=kind is FileKind.BINARY,
        content_type=guess_content_type(filename),
        size=size,
        checksum=checksum,
        expire_minutes=options.expire,
        created_by_agent_name=caller.agent_name,
        description=options.description or None,
        tags=split_tags(options.tags),
        project_id=options.project_id or None,
        is_public=options.is_public,
        last_modified=last_modified,
    )


def read_local_file(local_path: str | Path, max_bytes: int | None = None) -> tuple[bytes, datetime]:
    """
    Read a regular file and its modification time.

    Raises:
        FileReadError: If the path is missing, not a regular file, too large or unreadable
    """
    path = Path(local_path)
    try:
        stats = path.stat()
    except OSError as e:
        raise FileReadError(str(path), e.strerror or str(e)) from e

    if not path.is_file():
        raise FileReadError(str(path), "path is not a regular file")

    if max_bytes is not None and stats.st_size > max_bytes:
        raise FileReadError(
            str(path), f"file is {stats.st_size} bytes, limit is {max_bytes} bytes"
        )

    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileReadError(str(path), e.strerror or str(e)) from e

    return data, datetime.fromtimestamp(stats.st_mtime, tz=UTC)


def prepare_upload_from_path(
    local_path: str | Path,
    remote_path: str,
    options: UploadOptions,
    caller: Caller,
    max_bytes: int | None = None,
) -> UploadPayload:
    """
    Read a local file and prepare it for upload.

    The TTL is validated before the file is read, so an invalid request never
    produces a payload.
    """
    bounds_check(options.expire)
    data, mtime = read_local_file(local_path, max_bytes=max_bytes)
    payload = prepare_upload(
        data,
        Path(local_path).name,
        remote_path,
        options,
        caller,
        last_modified=mtime,
    )
    logger.debug(
        f"Prepared upload for {local_path}",
        extra={
            "path": remote_path,
            "size": payload.size,
            "base64_encoded": payload.base64_encoded,
        },
    )
    return payload
