"""
Sightengine nudity classification provider.

Sign up at https://sightengine.com/ and export ``SIGHTENGINE_USER`` and
``SIGHTENGINE_SECRET``; without them the NSFW analyzer runs its heuristic.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Protocol

import requests

from artmod.errors import ProviderError
from artmod.util.image_utils import ImageSource
from artmod.util.logger import get_logger

logger = get_logger("sightengine")

SIGHTENGINE_ENDPOINT = "https://api.sightengine.com/1.0/check.json"
SIGHTENGINE_MODELS = "nudity-2.0,wad,offensive"
NSFW_CATEGORIES = ("sexual_activity", "sexual_display", "erotica", "suggestive")
DEFAULT_PROVIDER_TIMEOUT = 30.0


class NSFWProvider(Protocol):
    """External NSFW classifier interface for dependency injection."""

    name: str

    async def classify(self, source: ImageSource) -> Dict[str, float]:
        """Return per-category scores in [0, 1]; raise ProviderError on failure."""
        ...


def extract_category_scores(payload: Dict[str, Any]) -> Dict[str, float]:
    """Pull the nudity category scores out of a Sightengine response, defaulting to 0."""
    nudity = payload.get("nudity") or {}
    scores: Dict[str, float] = {}
    for category in NSFW_CATEGORIES:
        value = nudity.get(category, 0.0)
        try:
            scores[category] = float(value or 0.0)
        except (TypeError, ValueError):
            scores[category] = 0.0
    return scores


class SightengineProvider:
    """Calls the Sightengine check endpoint with a fixed timeout."""

    name = "sightengine"

    def __init__(self, api_user: str, api_secret: str, timeout: float = DEFAULT_PROVIDER_TIMEOUT) -> None:
        self._api_user = api_user
        self._api_secret = api_secret
        self.timeout = timeout

    def _credentials(self) -> Dict[str, str]:
        return {
            "models": SIGHTENGINE_MODELS,
            "api_user": self._api_user,
            "api_secret": self._api_secret,
        }

    def _check_url(self, url: str) -> Dict[str, Any]:
        params = {"url": url, **self._credentials()}
        response = requests.get(SIGHTENGINE_ENDPOINT, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _check_media(self, data: bytes) -> Dict[str, Any]:
        response = requests.post(
            SIGHTENGINE_ENDPOINT,
            data=self._credentials(),
            files={"media": ("upload", data)},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def check(self, source: ImageSource) -> Dict[str, Any]:
        """
        Run the raw Sightengine check for an image source.

        URLs are passed through for the provider to fetch; buffers are uploaded.

        Raises:
            ProviderError: On transport failures or a non-success status.
        """
        try:
            if source.url is not None:
                payload = await asyncio.to_thread(self._check_url, str(source.url))
            else:
                image = await source.load()
                payload = await asyncio.to_thread(self._check_media, image.data)
        except requests.RequestException as exc:
            raise ProviderError(f"Sightengine request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"Sightengine returned an unreadable response: {exc}") from exc

        if not isinstance(payload, dict):
            raise ProviderError(f"Sightengine returned a {type(payload).__name__} instead of a JSON object")
        if payload.get("status") != "success":
            error = payload.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else error
            raise ProviderError(f"Sightengine returned status {payload.get('status')!r}: {message}")
        return payload

    async def classify(self, source: ImageSource) -> Dict[str, float]:
        payload = await self.check(source)
        scores = extract_category_scores(payload)
        logger.debug(
            "[SIGHTENGINE] Scores for %s: %s",
            source.describe(),
            ", ".join(f"{name}={value:.3f}" for name, value in scores.items()),
        )
        return scores

    async def probe(self, source: ImageSource) -> Dict[str, Any]:
        """
        Diagnostic call returning every category score plus request metadata.

        Never raises: failures are reported in an ``error`` entry.
        """
        try:
            payload = await self.check(source)
        except ProviderError as exc:
            logger.error("[SIGHTENGINE] Probe failed for %s: %s", source.describe(), exc)
            return {"error": str(exc)}

        scores = extract_category_scores(payload)
        nudity = payload.get("nudity") or {}
        scores_with_none = {**scores, "none": float(nudity.get("none", 0.0) or 0.0)}
        request = payload.get("request") or {}
        return {
            "status": payload.get("status"),
            "request_id": request.get("id"),
            "score": max(scores.values()) if scores else 0.0,
            "all_scores": scores_with_none,
            "raw": payload,
        }
