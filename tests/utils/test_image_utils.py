import asyncio
import hashlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests

from artmod.datatypes.image_datatypes import ImageURL, to_image_ref
from artmod.errors import ImageLoadError
from artmod.util.image_utils import (
    ImageLoader,
    ImageSource,
    LoadedImage,
    compute_fingerprint,
    fetch_image_bytes,
    generate_cache_key,
    read_image_metadata,
)


def _mock_streaming_get(chunks, status_error=None):
    response = MagicMock()
    response.iter_content.return_value = chunks
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    mock_get = MagicMock()
    mock_get.return_value.__enter__.return_value = response
    return mock_get


def test_compute_fingerprint_is_sha256():
    assert compute_fingerprint(b"abc") == hashlib.sha256(b"abc").hexdigest()


def test_generate_cache_key_for_url():
    ref = ImageURL("https://cdn.example.com/a.png")
    expected = hashlib.sha256(b"https://cdn.example.com/a.pngfull").hexdigest()

    assert generate_cache_key(ref) == f"moderation_full_{expected}"


def test_generate_cache_key_distinguishes_refs_and_dimensions():
    first = ImageURL("https://cdn.example.com/a.png")
    second = ImageURL("https://cdn.example.com/b.png")

    assert generate_cache_key(first) != generate_cache_key(second)
    assert generate_cache_key(first) != generate_cache_key(first, "nsfw")
    assert generate_cache_key(b"\x89PNG").startswith("moderation_full_")
    assert generate_cache_key(b"\x89PNG") == generate_cache_key(b"\x89PNG")


def test_read_image_metadata_png(make_image):
    data = make_image(64, 32, color=(100, 150, 200))

    metadata = read_image_metadata(data)

    assert (metadata.width, metadata.height) == (64, 32)
    assert metadata.format == "png"
    assert metadata.byte_size == len(data)
    assert metadata.channels == 3
    assert metadata.mean_brightness == pytest.approx(150.0, abs=1.0)


def test_read_image_metadata_jpeg(make_image):
    metadata = read_image_metadata(make_image(40, 40, fmt="JPEG"))

    assert metadata.format == "jpeg"


def test_read_image_metadata_rejects_garbage():
    with pytest.raises(ImageLoadError):
        read_image_metadata(b"definitely not an image")


def test_fetch_image_bytes_joins_chunks():
    mock_get = _mock_streaming_get([b"ab", b"cd"])
    with patch("artmod.util.image_utils.requests.get", mock_get):
        data = fetch_image_bytes("https://cdn.example.com/a.png", timeout=5)

    assert data == b"abcd"
    assert mock_get.call_args.kwargs["timeout"] == 5
    assert mock_get.call_args.kwargs["stream"] is True


def test_fetch_image_bytes_enforces_size_cap():
    mock_get = _mock_streaming_get([b"x" * 10, b"x" * 10])
    with patch("artmod.util.image_utils.requests.get", mock_get):
        with pytest.raises(ImageLoadError, match="max download size"):
            fetch_image_bytes("https://cdn.example.com/a.png", max_bytes=15)


def test_fetch_image_bytes_wraps_http_errors():
    mock_get = _mock_streaming_get([], status_error=requests.HTTPError("404"))
    with patch("artmod.util.image_utils.requests.get", mock_get):
        with pytest.raises(ImageLoadError):
            fetch_image_bytes("https://cdn.example.com/missing.png")


def test_fetch_image_bytes_wraps_timeouts():
    with patch("artmod.util.image_utils.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(ImageLoadError):
            fetch_image_bytes("https://cdn.example.com/slow.png")


@pytest.mark.asyncio
async def test_image_loader_decodes_buffers(png_bytes):
    image = await ImageLoader().load(png_bytes)

    assert image.data == png_bytes
    assert image.metadata.format == "png"
    assert image.fingerprint == hashlib.sha256(png_bytes).hexdigest()


@pytest.mark.asyncio
async def test_image_loader_downloads_urls(png_bytes):
    with patch("artmod.util.image_utils.fetch_image_bytes", return_value=png_bytes) as mock_fetch:
        image = await ImageLoader(timeout=3, max_bytes=1000).load(to_image_ref("https://cdn.example.com/a.png"))

    mock_fetch.assert_called_once_with("https://cdn.example.com/a.png", 3, 1000)
    assert image.metadata.width == 64


@pytest.mark.asyncio
async def test_image_source_loads_once_for_concurrent_callers(png_bytes):
    loaded = LoadedImage(data=png_bytes, metadata=read_image_metadata(png_bytes))
    loader = MagicMock()
    loader.load = AsyncMock(return_value=loaded)
    source = ImageSource(png_bytes, loader)

    results = await asyncio.gather(source.load(), source.load(), source.load())

    assert all(result is loaded for result in results)
    loader.load.assert_awaited_once()


@pytest.mark.asyncio
async def test_image_source_remembers_failures():
    loader = MagicMock()
    loader.load = AsyncMock(side_effect=ImageLoadError("404"))
    source = ImageSource(to_image_ref("https://cdn.example.com/missing.png"), loader)

    for _ in range(2):
        with pytest.raises(ImageLoadError):
            await source.load()

    loader.load.assert_awaited_once()
    assert source.url == "https://cdn.example.com/missing.png"


def test_image_source_describe_buffer(png_bytes):
    source = ImageSource(png_bytes)

    assert source.url is None
    assert source.describe() == f"<buffer {len(png_bytes)} bytes>"
