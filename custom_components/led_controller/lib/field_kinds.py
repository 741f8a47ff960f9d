"""Per-type behaviour for settable fields.

Each :class:`FieldType` that can be set has exactly one :class:`FieldKind`
registered for it. A kind knows how to:

* ``validate`` a caller-supplied value (raising :class:`ValidationError`),
* ``to_wire`` a validated value for the ``/set`` endpoint,
* ``extra_params`` that must travel alongside the primary parameter,
* ``to_display`` a wire value received from the controller,
* describe the ``widget`` used to render the command.

Kinds are registered with :func:`register_kind` and looked up with
:func:`kind_for`, so dispatch never branches on the integer type tag.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ValidationError, ValidationReason
from .schema import FieldDefinition, FieldType

DEFAULT_NUMBER_MIN = 0
DEFAULT_NUMBER_MAX = 65535

BOOL_TRUE = "on"
BOOL_FALSE = "off"
_BOOL_INPUTS = {"0": 0, "1": 1, BOOL_FALSE: 0, BOOL_TRUE: 1}

_UINT_RE = re.compile(r"[0-9]+")
_HEX_COLOR_RE = re.compile(r"[0-9A-Fa-f]{6}")


@dataclass(frozen=True, slots=True)
class WidgetDescriptor:
    """A UI widget description such as ``slider,0,1,255``."""

    kind: str
    args: tuple[Any, ...] = ()

    def __str__(self) -> str:
        return ",".join([self.kind, *(str(arg) for arg in self.args)])


def on_off(value: Any) -> str:
    """Render any boolean-ish wire value as ``on``/``off``."""

    if isinstance(value, str):
        truthy = value.strip().lower() in ("1", BOOL_TRUE, "true")
    else:
        truthy = bool(value)
    return BOOL_TRUE if truthy else BOOL_FALSE


def _text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip()


class FieldKind:
    """Base class; subclasses set ``field_type`` and override behaviour."""

    field_type: FieldType

    def validate(self, fdef: FieldDefinition, raw: Any) -> None:
        return None

    def to_wire(self, fdef: FieldDefinition, raw: Any) -> Any:
        return raw

    def extra_params(self, fdef: FieldDefinition, raw: Any) -> dict[str, str]:
        return {}

    def to_display(self, fdef: FieldDefinition, value: Any) -> Any:
        return value

    def widget(self, fdef: FieldDefinition) -> Optional[WidgetDescriptor]:
        return None


_KINDS: dict[FieldType, FieldKind] = {}


def register_kind(cls: type[FieldKind]) -> type[FieldKind]:
    """Class decorator registering one instance of ``cls`` for its type."""

    _KINDS[cls.field_type] = cls()
    return cls


def kind_for(field_type: FieldType) -> Optional[FieldKind]:
    return _KINDS.get(field_type)


@register_kind
class NumberKind(FieldKind):
    field_type = FieldType.NUMBER

    @staticmethod
    def bounds(fdef: FieldDefinition) -> tuple[int, int]:
        low = fdef.min if fdef.min is not None else DEFAULT_NUMBER_MIN
        high = fdef.max if fdef.max is not None else DEFAULT_NUMBER_MAX
        return low, high

    def validate(self, fdef: FieldDefinition, raw: Any) -> None:
        text = _text(raw)
        if text is None or text == "":
            raise ValidationError(
                ValidationReason.MISSING_VALUE,
                f"Value required for numeric field {fdef.name}",
            )
        if not _UINT_RE.fullmatch(text):
            raise ValidationError(
                ValidationReason.WRONG_TYPE,
                f"Invalid numeric value for {fdef.name}",
            )
        low, high = self.bounds(fdef)
        if not low <= int(text) <= high:
            raise ValidationError(
                ValidationReason.OUT_OF_RANGE,
                f"Value for {fdef.name} must be between {low} and {high}",
            )

    def to_wire(self, fdef: FieldDefinition, raw: Any) -> int:
        return int(_text(raw))

    def widget(self, fdef: FieldDefinition) -> WidgetDescriptor:
        low, high = self.bounds(fdef)
        return WidgetDescriptor("slider", (low, 1, high))


@register_kind
class BooleanKind(FieldKind):
    field_type = FieldType.BOOLEAN

    def validate(self, fdef: FieldDefinition, raw: Any) -> None:
        text = _text(raw)
        if text is None:
            return
        if text.lower() not in _BOOL_INPUTS:
            raise ValidationError(
                ValidationReason.WRONG_TYPE,
                "Boolean value must be 0, 1, on, or off",
            )

    def to_wire(self, fdef: FieldDefinition, raw: Any) -> int:
        text = _text(raw)
        if text is None:
            return 0
        return _BOOL_INPUTS.get(text.lower(), 0)

    def to_display(self, fdef: FieldDefinition, value: Any) -> str:
        return on_off(value)

    def widget(self, fdef: FieldDefinition) -> WidgetDescriptor:
        return WidgetDescriptor("toggle", (BOOL_FALSE, BOOL_TRUE))


@register_kind
class SelectKind(FieldKind):
    field_type = FieldType.SELECT

    @staticmethod
    def labels(fdef: FieldDefinition) -> tuple[str, ...]:
        """Display labels, or ``Option<i>`` for option-less fields."""

        if fdef.display_labels:
            return fdef.display_labels
        high = fdef.max if fdef.max is not None and fdef.max >= 0 else 0
        return tuple(f"Option{idx}" for idx in range(high + 1))

    def _index(self, fdef: FieldDefinition, text: str) -> Optional[int]:
        idx = fdef.index_for(text)
        if idx is not None:
            return idx
        labels = self.labels(fdef)
        if text in labels:
            return labels.index(text)
        if _UINT_RE.fullmatch(text) and int(text) < len(labels):
            return int(text)
        return None

    def validate(self, fdef: FieldDefinition, raw: Any) -> None:
        text = _text(raw)
        if text is None or text == "":
            raise ValidationError(
                ValidationReason.MISSING_VALUE,
                f"Value required for select field {fdef.name}",
            )
        if self._index(fdef, text) is not None:
            return
        if not fdef.options:
            if not _UINT_RE.fullmatch(text):
                raise ValidationError(
                    ValidationReason.WRONG_TYPE,
                    f"Invalid numeric value for select {fdef.name}",
                )
            raise ValidationError(
                ValidationReason.OUT_OF_RANGE,
                f"Select value for {fdef.name} must be between 0 and {len(self.labels(fdef)) - 1}",
            )
        choices = ", ".join(self.labels(fdef))
        raise ValidationError(
            ValidationReason.UNKNOWN_OPTION,
            f"Unknown option {text!r} for {fdef.name}, choose one of {choices}",
        )

    def to_wire(self, fdef: FieldDefinition, raw: Any) -> Any:
        text = _text(raw)
        idx = None
        if text is not None:
            idx = fdef.index_for(text)
            if idx is None and not fdef.options and text in self.labels(fdef):
                idx = self.labels(fdef).index(text)
        if idx is None:
            # devices accept raw indices as well
            return raw
        return idx

    def to_display(self, fdef: FieldDefinition, value: Any) -> Any:
        text = _text(value)
        if text is None:
            return value
        if _UINT_RE.fullmatch(text):
            labels = self.labels(fdef)
            idx = int(text)
            return labels[idx] if idx < len(labels) else value
        idx = fdef.index_for(text)
        if idx is not None:
            return fdef.display_labels[idx]
        return value

    def widget(self, fdef: FieldDefinition) -> WidgetDescriptor:
        args: list[Any] = []
        for idx, label in enumerate(self.labels(fdef)):
            args.extend((idx, label))
        return WidgetDescriptor("selectnumbers", tuple(args))


@register_kind
class ColorKind(FieldKind):
    field_type = FieldType.COLOR

    def validate(self, fdef: FieldDefinition, raw: Any) -> None:
        text = _text(raw)
        if text is None or text == "":
            raise ValidationError(ValidationReason.MISSING_VALUE, "Color value required")
        if not _HEX_COLOR_RE.fullmatch(text):
            raise ValidationError(
                ValidationReason.WRONG_TYPE,
                "Color value must be 6-digit hex (RRGGBB)",
            )

    def to_wire(self, fdef: FieldDefinition, raw: Any) -> int:
        return int(_text(raw), 16)

    def extra_params(self, fdef: FieldDefinition, raw: Any) -> dict[str, str]:
        # the firmware reads the color from separate r/g/b parameters
        rgb = self.to_wire(fdef, raw)
        return {
            "r": str((rgb >> 16) & 0xFF),
            "g": str((rgb >> 8) & 0xFF),
            "b": str(rgb & 0xFF),
        }

    def to_display(self, fdef: FieldDefinition, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) or (isinstance(value, str) and _UINT_RE.fullmatch(value)):
            return f"{int(value) & 0xFFFFFF:06X}"
        return value

    def widget(self, fdef: FieldDefinition) -> WidgetDescriptor:
        return WidgetDescriptor("colorpicker", ("RGB",))


__all__ = [
    "BOOL_FALSE",
    "BOOL_TRUE",
    "BooleanKind",
    "ColorKind",
    "FieldKind",
    "NumberKind",
    "SelectKind",
    "WidgetDescriptor",
    "kind_for",
    "on_off",
    "register_kind",
]
