"""Image file storage — naming, path validation and content-type mapping."""

from __future__ import annotations

import uuid
from pathlib import Path

from deckassist.errors.exceptions import ProcessingError

_DEFAULT_IMAGES_DIR = Path.cwd() / "data" / "images"

_CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def extension_for_content_type(content_type: str | None) -> str:
    """Map a Content-Type header to a file extension (default ``jpg``)."""
    if not content_type:
        return "jpg"
    mime = content_type.split(";", 1)[0].strip().lower()
    return _CONTENT_TYPE_EXTENSIONS.get(mime, "jpg")


class ImageStore:
    """Flat directory of image files addressed by bare filename."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = Path(root) if root else _DEFAULT_IMAGES_DIR

    @property
    def root(self) -> Path:
        return self._root

    def path(self, filename: str) -> Path:
        """Resolve a filename inside the store, rejecting path traversal."""
        if not filename or Path(filename).name != filename:
            raise ProcessingError(f"Invalid image filename: {filename!r}", path=filename)
        return self._root / filename

    def read(self, filename: str) -> bytes:
        path = self.path(filename)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise ProcessingError(f"Image not found: {filename}", path=str(path)) from e
        except OSError as e:
            raise ProcessingError(f"Cannot read image {filename}: {e}", path=str(path)) from e

    def size(self, filename: str) -> int:
        path = self.path(filename)
        try:
            return path.stat().st_size
        except FileNotFoundError as e:
            raise ProcessingError(f"Image not found: {filename}", path=str(path)) from e

    def save(self, data: bytes, prefix: str, extension: str) -> str:
        """Write ``data`` under a fresh ``{prefix}_{uuid}.{extension}`` name."""
        filename = f"{prefix}_{uuid.uuid4()}.{extension}"
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / filename).write_bytes(data)
        return filename
