"""
Pytest configuration and fixtures for artmod tests.
"""

import sys
from io import BytesIO
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from PIL import Image  # noqa: E402


class SequenceRng:
    """Stand-in for random.Random that replays fixed draws, then repeats the last one."""

    def __init__(self, *values: float) -> None:
        self.values = list(values) or [0.0]
        self.calls = 0

    def random(self) -> float:
        index = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[index]


def make_image_bytes(
    width: int = 64,
    height: int = 64,
    fmt: str = "PNG",
    color: tuple[int, int, int] = (20, 20, 20),
) -> bytes:
    """Encode a solid-color image with Pillow."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture()
def zero_rng() -> SequenceRng:
    return SequenceRng(0.0)


@pytest.fixture()
def make_rng():
    """Factory for deterministic rng stand-ins."""
    return SequenceRng


@pytest.fixture()
def make_image():
    """Factory for encoded test images."""
    return make_image_bytes
