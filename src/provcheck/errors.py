"""Error types raised across provcheck.

Content failures (missing reference files, mismatches) are not exceptions;
they are comparison statuses. Exceptions here cover input acquisition and
run setup.
"""

from __future__ import annotations


class ProvcheckError(Exception):
    """Base class for provcheck errors."""


class FetchFailure(ProvcheckError):
    """The explorer could not be reached or returned no verified source."""

    def __init__(self, artifact_id: str, message: str) -> None:
        super().__init__(f"{artifact_id}: {message}")
        self.artifact_id = artifact_id
        self.message = message


class BundleDecodeFailure(ProvcheckError):
    """The explorer payload could not be decoded into a path -> content mapping."""

    def __init__(self, artifact_id: str, message: str) -> None:
        super().__init__(f"{artifact_id}: {message}")
        self.artifact_id = artifact_id
        self.message = message


class ReferenceTreeUnavailable(ProvcheckError):
    """The reference tree does not exist or cannot be read."""


class ReferenceFileUnreadable(ProvcheckError):
    """A reference file exists but could not be read."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ReferencePreparationError(ProvcheckError):
    """Checkout, setup or override of the reference tree failed."""


CONFIG_REASON_MISSING = "CONFIG_MISSING"
CONFIG_REASON_PARSE_ERROR = "CONFIG_PARSE_ERROR"
CONFIG_REASON_SCHEMA_INVALID = "CONFIG_SCHEMA_INVALID"


class ConfigError(ProvcheckError, ValueError):
    """Run configuration validation error."""

    reason_code: str

    def __init__(self, message: str, reason_code: str = CONFIG_REASON_SCHEMA_INVALID) -> None:
        super().__init__(message)
        self.reason_code = reason_code
