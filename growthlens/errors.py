"""
Error types shared across growthlens.

Access errors and provider errors are the two failures that can abort an
analysis run.  Malformed JSON coming back from a model is never an error;
the steps degrade to a fallback value instead.
"""

from __future__ import annotations

from typing import Optional


class GrowthLensError(Exception):
    """Base class for every error raised on purpose by this package."""


class CodebaseAccessError(GrowthLensError):
    """A path was outside the sandbox, missing, or of the wrong type."""


class ProviderError(GrowthLensError):
    """The text-generation service failed to return a usable completion."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MissingContextKeyError(GrowthLensError):
    """A step required a context key that no earlier step produced."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Key not found: {key}")
        self.key = key


class StepError(GrowthLensError):
    """A step found context data of an unexpected shape."""


class EngineError(GrowthLensError):
    """A top-level command could not produce its result."""


class ManifestError(EngineError):
    """A stored manifest is missing a required field or has the wrong shape."""
