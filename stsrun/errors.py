"""Custom exceptions for the statistical test suite runner."""

from __future__ import annotations


class StsError(Exception):
    """Base error type for application specific failures."""

    exit_code: int = 1


class MissingFileError(StsError):
    """Raised when a required input file could not be located."""

    exit_code = 2


class InvalidConfigurationError(StsError):
    """Raised when the configuration file is malformed or invalid."""

    exit_code = 3


class TestExecutionError(StsError):
    """Raised when a statistical test fails to execute."""

    exit_code = 4


class InvalidInputError(StsError):
    """Raised when the provided bit data does not meet application constraints."""

    exit_code = 5


class InsufficientBitsError(InvalidInputError):
    """Raised when the bit source cannot supply a full bitstream."""


class ReportWriteError(StsError):
    """Raised when a report file could not be written."""

    exit_code = 6

    def __init__(self, message: str, path: object | None = None) -> None:
        super().__init__(message)
        self.path = path


class FatalPreconditionError(StsError):
    """Raised when an internal invariant is violated.

    These indicate a logic error rather than bad input and terminate the run.
    Each call site carries its own exit status.
    """

    def __init__(self, site: str, invariant: str, exit_code: int) -> None:
        super().__init__(f"{site}: {invariant}")
        self.site = site
        self.invariant = invariant
        self.exit_code = exit_code


__all__ = [
    "StsError",
    "MissingFileError",
    "InvalidConfigurationError",
    "TestExecutionError",
    "InvalidInputError",
    "InsufficientBitsError",
    "ReportWriteError",
    "FatalPreconditionError",
]
