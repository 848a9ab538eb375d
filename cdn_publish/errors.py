"""Exceptions raised by the publish pipeline."""

from __future__ import annotations


class PublishError(Exception):
    """Base class for every error the pipeline produces."""


class ConfigurationError(PublishError):
    """The build is configured in a way the pipeline cannot work with."""


class TransformError(PublishError):
    """A user hook returned something other than a string.

    Reported through the log only; the run keeps going with the value coerced
    to a string.
    """

    def __init__(self, hook: str, value: object, location: str | None = None) -> None:
        self.hook = hook
        self.value = value
        self.location = location
        message = f"the return result of {hook} is not string (got {type(value).__name__})"
        if location:
            message += f" for {location}"
        super().__init__(message)


class UploadError(PublishError):
    """The publisher rejected a batch or returned an incomplete result."""


class ManifestError(PublishError):
    """A build manifest is missing or malformed."""


class ExpressionError(PublishError):
    """An inline href expression uses syntax outside the supported grammar."""
