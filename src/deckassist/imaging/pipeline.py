"""Image post-processing — resize, filters, encode, compression, background removal."""

from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image, ImageFilter, UnidentifiedImageError

from deckassist.errors.exceptions import ProcessingError
from deckassist.imaging.files import ImageStore
from deckassist.types import FilterOptions, ProcessOptions, ResizeOptions

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024
_COMPRESS_QUALITY = 75

# A pixel is background when every colour channel is above this value
BACKGROUND_THRESHOLD = 240

_PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}

# Upper bound used when only one resize dimension is given
_UNBOUNDED = 1 << 30


def _bytes_to_pil(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ProcessingError(f"Unreadable image data: {e}") from e
    return img


# ── Individual steps ──


def resize(img: Image.Image, options: ResizeOptions) -> Image.Image:
    """Fit inside width x height, keeping aspect ratio. Never upscales."""
    if not options.width and not options.height:
        return img
    bounds = (options.width or _UNBOUNDED, options.height or _UNBOUNDED)
    if img.width <= bounds[0] and img.height <= bounds[1]:
        return img
    resized = img.copy()
    resized.thumbnail(bounds, Image.LANCZOS)
    return resized


def apply_filters(img: Image.Image, filters: FilterOptions) -> Image.Image:
    """Apply requested filters in order: grayscale, blur, sharpen, rotate."""
    if filters.grayscale:
        img = img.convert("LA" if "A" in img.getbands() else "L")
    if filters.blur:
        img = img.filter(ImageFilter.GaussianBlur(radius=filters.blur))
    if filters.sharpen:
        img = img.filter(ImageFilter.SHARPEN)
    if filters.rotate:
        # Positive angles turn clockwise
        img = img.rotate(-filters.rotate, expand=True)
    return img


def encode(img: Image.Image, fmt: str, quality: int) -> bytes:
    """Encode to jpeg, png or webp at the given quality."""
    pil_format = _PIL_FORMATS.get(fmt)
    if pil_format is None:
        raise ProcessingError(f"Unsupported output format: {fmt}")

    if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    elif pil_format == "WEBP" and img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
    elif img.mode == "P":
        img = img.convert("RGBA")

    buf = io.BytesIO()
    if pil_format == "PNG":
        # PNG is lossless; quality maps onto effort
        img.save(buf, format="PNG", optimize=quality < 90)
    else:
        img.save(buf, format=pil_format, quality=quality)
    return buf.getvalue()


def process_bytes(image_bytes: bytes, options: ProcessOptions) -> bytes:
    """Run the full pipeline over raw bytes: resize, filters, encode."""
    img = _bytes_to_pil(image_bytes)
    if options.resize:
        img = resize(img, options.resize)
    if options.filters:
        img = apply_filters(img, options.filters)
    return encode(img, options.format, options.effective_quality)


def remove_background_bytes(image_bytes: bytes, threshold: int = BACKGROUND_THRESHOLD) -> bytes:
    """Make near-white pixels transparent and everything else opaque; PNG out.

    This is a brightness chroma key for light, near-uniform backgrounds. It is
    not segmentation: light pixels inside the subject become transparent too.
    """
    img = _bytes_to_pil(image_bytes).convert("RGBA")
    pixels = np.array(img, dtype=np.uint8)
    background = np.all(pixels[:, :, :3] > threshold, axis=2)
    pixels[:, :, 3] = np.where(background, 0, 255).astype(np.uint8)

    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


class ImagePipeline:
    """File-level operations over an ImageStore. Outputs get fresh filenames."""

    def __init__(self, store: ImageStore) -> None:
        self._store = store

    @property
    def store(self) -> ImageStore:
        return self._store

    def process_image(self, filename: str, options: ProcessOptions | None = None) -> str:
        options = options or ProcessOptions()
        output = process_bytes(self._store.read(filename), options)
        processed = self._store.save(output, prefix="processed", extension=options.format)
        logger.debug("Processed %s -> %s", filename, processed)
        return processed

    def compress_if_large(self, filename: str, threshold_mb: float = 10.0) -> str:
        """Re-encode to webp when larger than ``threshold_mb``; otherwise a no-op."""
        size_mb = self._store.size(filename) / _BYTES_PER_MB
        if size_mb <= threshold_mb:
            return filename

        logger.info("Compressing large image: %.2fMB > %.2fMB", size_mb, threshold_mb)
        return self.process_image(
            filename,
            ProcessOptions(compress=True, quality=_COMPRESS_QUALITY, format="webp"),
        )

    def remove_background(self, filename: str) -> str:
        output = remove_background_bytes(self._store.read(filename))
        return self._store.save(output, prefix="nobg", extension="png")
