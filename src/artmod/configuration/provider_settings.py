import os
from typing import Any, Dict, Mapping, Optional


class ProviderSettings:
    """Helper exposing typed accessors for the NSFW provider credentials.

    Credentials are never read from the YAML file; they come from the
    environment (``SIGHTENGINE_USER`` / ``SIGHTENGINE_SECRET``), which the
    entry point populates from ``.env``.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, timeout: float = 30.0) -> "ProviderSettings":
        env = os.environ if environ is None else environ
        return cls(
            {
                "api_user": env.get("SIGHTENGINE_USER", ""),
                "api_secret": env.get("SIGHTENGINE_SECRET", ""),
                "timeout": timeout,
            }
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def api_user(self) -> str | None:
        val = self.data.get("api_user")
        return str(val) if val else None

    @property
    def api_secret(self) -> str | None:
        val = self.data.get("api_secret")
        return str(val) if val else None

    @property
    def timeout(self) -> float:
        return float(self.data.get("timeout", 30.0))

    @property
    def configured(self) -> bool:
        """True only when both credentials are present."""
        return bool(self.api_user and self.api_secret)
