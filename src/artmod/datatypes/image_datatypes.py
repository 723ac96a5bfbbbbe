from __future__ import annotations

from dataclasses import dataclass
from typing import Union


class _StrValue:
    """Hashable wrapper around a stripped, non-empty string.

    Instances compare equal to other instances of the same class and to plain
    strings holding the same text.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, "_StrValue"]) -> None:
        if isinstance(value, type(self)):
            value = value._value
        if not isinstance(value, str):
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value!r}")
        text = value.strip()
        if not text:
            raise ValueError(f"{type(self).__name__} cannot be empty")
        self._value = text

    def to_string(self) -> str:
        return self._value

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class ImageURL(_StrValue):
    """
    Location of a hosted image.

    Example:
        >>> str(ImageURL(" https://cdn.example.com/art/42.png "))
        'https://cdn.example.com/art/42.png'
    """

    __slots__ = ()


class ImageFingerprint(_StrValue):
    """SHA-256 hex digest of an image's encoded bytes."""

    __slots__ = ()

    def short(self, length: int = 16) -> str:
        """Leading ``length`` hex characters, as stored alongside results."""
        return self._value[:length]


# A moderation request points at either a hosted image or an in-memory buffer
ImageRef = Union[ImageURL, bytes]


def to_image_ref(value: Union[str, bytes, bytearray, ImageURL]) -> ImageRef:
    """
    Normalize a caller-supplied image reference.

    Strings become :class:`ImageURL`; byte buffers are kept as immutable bytes.

    Raises:
        ValueError: If the reference is empty or of an unsupported type.
    """
    if isinstance(value, ImageURL):
        return value
    if isinstance(value, (bytes, bytearray)):
        if not value:
            raise ValueError("Image buffer cannot be empty")
        return bytes(value)
    if isinstance(value, str):
        return ImageURL(value)
    raise ValueError(f"Unsupported image reference type: {type(value).__name__}")


def describe_image_ref(ref: ImageRef) -> str:
    """Short printable form of an image reference for log lines."""
    if isinstance(ref, bytes):
        return f"<buffer {len(ref)} bytes>"
    return str(ref)


@dataclass(frozen=True, slots=True)
class ImageMetadata:
    """Decoded characteristics of an image used by the heuristic analyzers.

    Attributes:
        width (int): Width in pixels.
        height (int): Height in pixels.
        format (str): Lower-case format name as reported by Pillow (``jpeg``, ``png``...).
        byte_size (int): Size of the encoded image in bytes.
        channels (int): Number of color bands.
        mean_brightness (float): Mean of the per-channel means, 0-255.
    """

    width: int
    height: int
    format: str
    byte_size: int
    channels: int = 3
    mean_brightness: float = 0.0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def compression_ratio(self) -> float:
        """Encoded bytes per pixel."""
        return self.byte_size / self.pixel_count if self.pixel_count else 0.0

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"
