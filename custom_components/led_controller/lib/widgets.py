"""Command tokens and widget descriptors for UI front-ends."""
from __future__ import annotations

from typing import Iterable, Optional

from .field_kinds import BOOL_FALSE, BOOL_TRUE, WidgetDescriptor, kind_for
from .schema import POWER_ALIASES, POWER_FIELD, FieldType, SchemaRegistry

REFRESH_COMMAND = "refresh"


def build_widget_table(
    registry: SchemaRegistry,
    sections: Optional[Iterable[str]] = None,
) -> dict[str, Optional[WidgetDescriptor]]:
    """Return command name -> widget; plain commands map to ``None``."""

    table: dict[str, Optional[WidgetDescriptor]] = {}
    commands = registry.command_table(sections)
    for command in sorted(commands):
        fdef = commands[command]
        if registry.is_alias(command):
            table[command] = None
            continue
        kind = kind_for(fdef.type)
        table[command] = kind.widget(fdef) if kind is not None else None
    return table


def build_command_list(
    registry: SchemaRegistry,
    sections: Optional[Iterable[str]] = None,
) -> list[str]:
    """Return the command tokens, e.g. ``["refresh", "on", "off", "brightness:slider,0,1,255"]``.

    Fields are ordered by name; the power field contributes only its
    ``on``/``off`` aliases and other booleans list their two values.
    """

    tokens = [REFRESH_COMMAND]
    commands = registry.command_table(sections)
    unique = {fdef.name: fdef for fdef in commands.values()}
    for fdef in sorted(unique.values(), key=lambda f: f.name):
        if fdef.type is FieldType.BOOLEAN and fdef.name == POWER_FIELD:
            tokens.extend(alias for alias in POWER_ALIASES if alias in commands)
            continue
        command = fdef.command_name
        if command not in commands:
            continue
        if fdef.type is FieldType.BOOLEAN:
            tokens.append(f"{command}:{BOOL_TRUE},{BOOL_FALSE}")
            continue
        kind = kind_for(fdef.type)
        widget = kind.widget(fdef) if kind is not None else None
        tokens.append(f"{command}:{widget}" if widget is not None else command)
    return tokens


__all__ = ["REFRESH_COMMAND", "build_command_list", "build_widget_table"]
