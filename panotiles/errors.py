"""Exception hierarchy for panotiles."""

from __future__ import annotations


class PanoTilesError(Exception):
    """Base class for all panotiles errors."""


class ConfigurationError(PanoTilesError, ValueError):
    """Invalid processing options, raised before any work starts."""


class ResourceLimitError(ConfigurationError):
    """Requested cube resolution exceeds the renderer's texture limit."""


class EncodingError(PanoTilesError):
    """A raster could not be converted to compressed image bytes."""


class SourceLoadError(PanoTilesError):
    """The source panorama could not be read or decoded."""


class DisposedError(PanoTilesError, RuntimeError):
    """A processing call was made on a disposed instance."""
