"""Common types, enums and exceptions shared across modules."""

from enum import Enum


class Stage(str, Enum):
    """Pipeline stage kinds, in dependency order."""

    SOURCE = "source"
    COMPILE = "compile"
    LINK = "link"
    RUN = "run"


class Unit(str, Enum):
    """Measurement units for test values."""

    TIME = "time"  # nanoseconds
    BYTES = "bytes"
    COUNT = "count"


class ErrorCode(str, Enum):
    """Error code enumeration for failures surfaced in logs and the API."""

    BUILD_ERROR = "BUILD_ERROR"
    MEASUREMENT_ERROR = "MEASUREMENT_ERROR"
    UPDATE_ERROR = "UPDATE_ERROR"
    INVARIANT_ERROR = "INVARIANT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PerfTrendError(Exception):
    """Base class for perftrend errors."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR


class BuildFailure(PerfTrendError, RuntimeError):
    """A commit could not be built. Permanent for that commit."""

    code = ErrorCode.BUILD_ERROR


class MeasurementFailure(PerfTrendError, RuntimeError):
    """A measured child process failed or did not produce its artifact."""

    code = ErrorCode.MEASUREMENT_ERROR


class InvariantViolation(PerfTrendError):
    """Programming error. Not caught by the worker loop."""

    code = ErrorCode.INVARIANT_ERROR
