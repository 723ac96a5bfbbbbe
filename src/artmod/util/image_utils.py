"""Image fetching, decoding and fingerprinting utilities for moderation."""

import asyncio
import hashlib
from dataclasses import dataclass
from io import BytesIO

import requests
from PIL import Image, ImageStat, UnidentifiedImageError
from pillow_heif import register_heif_opener

from artmod.datatypes.image_datatypes import ImageFingerprint, ImageMetadata, ImageRef, ImageURL, describe_image_ref
from artmod.errors import ImageLoadError
from artmod.util.logger import get_logger

logger = get_logger("image_utils")

register_heif_opener()

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAX_BYTES = 20 * 1024 * 1024  # 20MB safety cap
_CHUNK_SIZE = 8192


def compute_fingerprint(data: bytes) -> ImageFingerprint:
    """Return the SHA-256 content fingerprint of raw image bytes."""
    return ImageFingerprint(hashlib.sha256(data).hexdigest())


def generate_cache_key(image_ref: ImageRef, dimension: str = "full") -> str:
    """
    Build the cache key for an image reference and analysis dimension.

    URLs are hashed by their text, buffers by their content, each combined
    with the dimension tag so different analyses never collide.
    """
    if isinstance(image_ref, bytes):
        material = image_ref + dimension.encode("utf-8")
    else:
        material = (str(image_ref) + dimension).encode("utf-8")
    return f"moderation_{dimension}_{hashlib.sha256(material).hexdigest()}"


def fetch_image_bytes(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT, max_bytes: int = DEFAULT_MAX_BYTES) -> bytes:
    """
    Download an image and return its raw bytes.

    This function blocks the calling thread so it should be run through
    ``asyncio.to_thread``.

    Raises:
        ImageLoadError: On network failure, HTTP error status or an oversized body.
    """
    logger.debug("[DOWNLOAD] Fetching image from %s", url)
    try:
        with requests.get(url, timeout=timeout, stream=True) as response:
            response.raise_for_status()
            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise ImageLoadError(f"image exceeds max download size of {max_bytes} bytes")
    except requests.RequestException as exc:
        raise ImageLoadError(f"request failed for {url}: {exc}") from exc
    return bytes(buffer)


def read_image_metadata(data: bytes) -> ImageMetadata:
    """
    Decode image bytes and extract the characteristics used by the analyzers.

    Raises:
        ImageLoadError: If Pillow cannot identify or decode the image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            image_format = (img.format or "unknown").lower()
            bands = len(img.getbands())
            stats_source = img if img.mode in ("RGB", "L") else img.convert("RGB")
            channel_means = ImageStat.Stat(stats_source).mean
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageLoadError(f"could not decode image: {exc}") from exc

    if image_format == "jpg":
        image_format = "jpeg"

    brightness = sum(channel_means) / len(channel_means) if channel_means else 0.0
    return ImageMetadata(
        width=width,
        height=height,
        format=image_format,
        byte_size=len(data),
        channels=bands,
        mean_brightness=brightness,
    )


@dataclass(frozen=True, slots=True)
class LoadedImage:
    """Raw bytes plus decoded metadata for one image."""

    data: bytes
    metadata: ImageMetadata

    @property
    def fingerprint(self) -> ImageFingerprint:
        return compute_fingerprint(self.data)


class ImageLoader:
    """Fetches and decodes images with bounded time and size."""

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes

    async def load(self, image_ref: ImageRef) -> LoadedImage:
        """
        Load an image reference into memory.

        Byte buffers are decoded directly; URLs are downloaded in a worker
        thread first.

        Raises:
            ImageLoadError: If the image cannot be fetched or decoded.
        """
        if isinstance(image_ref, bytes):
            data = image_ref
        else:
            data = await asyncio.to_thread(fetch_image_bytes, str(image_ref), self.timeout, self.max_bytes)
        metadata = await asyncio.to_thread(read_image_metadata, data)
        return LoadedImage(data=data, metadata=metadata)


class ImageSource:
    """
    A single image shared by the analyzers of one aggregation.

    The first ``load()`` performs the fetch; concurrent and later callers get
    the same image, or the same ImageLoadError.
    """

    def __init__(self, image_ref: ImageRef, loader: ImageLoader | None = None) -> None:
        self.image_ref = image_ref
        self._loader = loader or ImageLoader()
        self._lock = asyncio.Lock()
        self._image: LoadedImage | None = None
        self._error: ImageLoadError | None = None

    @property
    def url(self) -> ImageURL | None:
        return self.image_ref if isinstance(self.image_ref, ImageURL) else None

    def describe(self) -> str:
        return describe_image_ref(self.image_ref)

    async def load(self) -> LoadedImage:
        async with self._lock:
            if self._image is not None:
                return self._image
            if self._error is not None:
                raise self._error
            try:
                self._image = await self._loader.load(self.image_ref)
            except ImageLoadError as exc:
                logger.warning("[DOWNLOAD] Failed to load image %s: %s", self.describe(), exc)
                self._error = exc
                raise
            return self._image
