"""Exception types raised across the moderation pipeline.

Only :class:`InvalidModerationRequest` is meant to reach callers of the
service layer. The others are raised and absorbed inside the pipeline, where
they are converted into degraded analyzer results.
"""


class ArtmodError(Exception):
    """Base class for all artmod errors."""


class InvalidModerationRequest(ArtmodError, ValueError):
    """The caller supplied an unusable moderation request (e.g. no image reference)."""


class ProviderError(ArtmodError):
    """The external classification provider failed or returned an unusable response."""


class ImageLoadError(ArtmodError):
    """The image could not be fetched or decoded."""


class ThresholdValidationError(ArtmodError, ValueError):
    """A threshold update referenced an unknown tier or carried an invalid value."""
