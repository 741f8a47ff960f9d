"""Protocol helpers for LED_Stripe_Dynamic_web_conf controllers."""

from .errors import (  # noqa: F401
    DecodeError,
    FrameError,
    LEDControllerError,
    NetworkError,
    SchemaError,
    ValidationError,
    ValidationReason,
)
from .schema import FieldDefinition, FieldType, SchemaRegistry, Section  # noqa: F401

__all__ = [
    "DecodeError",
    "FieldDefinition",
    "FieldType",
    "FrameError",
    "LEDControllerError",
    "NetworkError",
    "SchemaError",
    "SchemaRegistry",
    "Section",
    "ValidationError",
    "ValidationReason",
]
