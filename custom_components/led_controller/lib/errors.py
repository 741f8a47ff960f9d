"""Error taxonomy shared by the protocol helpers."""
from __future__ import annotations

from enum import Enum


class LEDControllerError(Exception):
    """Base exception for LED controller errors."""


class FrameError(LEDControllerError):
    """A WebSocket frame header was unrecognized or incomplete."""


class DecodeError(LEDControllerError):
    """A JSON candidate extracted from the stream could not be decoded."""

    def __init__(self, candidate: str, reason: str) -> None:
        super().__init__(f"{reason}: {candidate[:80]!r}")
        self.candidate = candidate
        self.reason = reason


class SchemaError(LEDControllerError):
    """The discovery payload could not be turned into a field registry."""


class NetworkError(LEDControllerError):
    """Transport failure talking to the controller."""


class ValidationReason(str, Enum):
    OUT_OF_RANGE = "out_of_range"
    WRONG_TYPE = "wrong_type"
    MISSING_VALUE = "missing_value"
    UNKNOWN_OPTION = "unknown_option"
    UNKNOWN_COMMAND = "unknown_command"


class ValidationError(LEDControllerError):
    """A command value was rejected before anything was sent."""

    def __init__(self, reason: ValidationReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
