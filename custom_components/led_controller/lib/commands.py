"""Validation and wire formatting of ``set`` commands."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ValidationError, ValidationReason
from .field_kinds import kind_for
from .schema import FieldDefinition, SchemaRegistry

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SetRequest:
    """A validated command ready for the ``/set`` endpoint."""

    command: str
    field: FieldDefinition
    wire_value: Any
    params: dict[str, str] = field(default_factory=dict)


class CommandDispatcher:
    """Check caller values against a field's type and convert them."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry

    def validate(self, fdef: FieldDefinition, raw_value: Any) -> None:
        kind = kind_for(fdef.type)
        if kind is None:
            raise ValidationError(
                ValidationReason.UNKNOWN_COMMAND,
                f"Field {fdef.name} cannot be set",
            )
        kind.validate(fdef, raw_value)

    def check(self, fdef: FieldDefinition, raw_value: Any) -> Optional[ValidationReason]:
        """Return the rejection reason, or ``None`` when the value is valid."""

        try:
            self.validate(fdef, raw_value)
        except ValidationError as err:
            return err.reason
        return None

    def format(self, fdef: FieldDefinition, raw_value: Any) -> Any:
        kind = kind_for(fdef.type)
        if kind is None:
            return raw_value
        return kind.to_wire(fdef, raw_value)

    def build_request(self, command: str, raw_value: Any = None) -> SetRequest:
        """Resolve ``command``, validate ``raw_value`` and build the request.

        For the ``on``/``off`` aliases the command name itself is the value.
        """

        fdef = self._registry.resolve(command)
        if fdef is None:
            raise ValidationError(
                ValidationReason.UNKNOWN_COMMAND,
                f"Unknown command {command}. Use 'refresh' to reload available commands.",
            )

        if self._registry.is_alias(command):
            raw_value = command

        self.validate(fdef, raw_value)
        wire = self.format(fdef, raw_value)

        params = {fdef.name: str(wire)}
        kind = kind_for(fdef.type)
        if kind is not None:
            params.update(kind.extra_params(fdef, raw_value))

        _LOGGER.debug("Command %s %r -> %s", command, raw_value, params)
        return SetRequest(command=command, field=fdef, wire_value=wire, params=params)


__all__ = ["CommandDispatcher", "SetRequest"]
