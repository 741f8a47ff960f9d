"""Field registry built from the controller's ``/all`` discovery response.

The controller describes every adjustable value as a field dict::

    {"name": "brightness", "label": "Brightness", "type": 0, "min": 0, "max": 255}

Fields arrive in display order, grouped by ``Section`` entries and
interleaved with ``Title`` entries that only matter to the device's own web
UI. :class:`SchemaRegistry` turns that list into typed
:class:`FieldDefinition` objects and derives the command table used by
:class:`~.commands.CommandDispatcher`.

A registry is replaced wholesale on every successful rebuild. A failed
rebuild leaves the previous fields in place.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, Mapping, Optional

from .errors import SchemaError

_LOGGER = logging.getLogger(__name__)

DEFAULT_SECTION = "default"
POWER_FIELD = "power"
POWER_ALIASES = ("on", "off")

_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_NON_IDENT_RE = re.compile(r"[^A-Za-z0-9_]+")


class FieldType(IntEnum):
    NUMBER = 0
    BOOLEAN = 1
    SELECT = 2
    COLOR = 3
    TITLE = 4
    SECTION = 5
    INVALID = 6


SETTABLE_TYPES = frozenset(
    {FieldType.NUMBER, FieldType.BOOLEAN, FieldType.SELECT, FieldType.COLOR}
)


def command_name_for(field_name: str) -> str:
    """``solidColor`` -> ``solid_color``."""

    return _CAMEL_RE.sub(r"\1_\2", field_name).lower()


def display_labels_for(options: Iterable[str]) -> tuple[str, ...]:
    """Return identifier-safe labels for select options, one per option.

    Runs of characters outside ``[A-Za-z0-9_]`` collapse to ``_``. Empty
    results become ``Option<index>`` and duplicates get an ``_<index>``
    suffix so every label maps back to exactly one index.
    """

    labels: list[str] = []
    seen: set[str] = set()
    for idx, option in enumerate(options):
        label = _NON_IDENT_RE.sub("_", str(option)).strip("_") or f"Option{idx}"
        if label in seen:
            label = f"{label}_{idx}"
        seen.add(label)
        labels.append(label)
    return tuple(labels)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return None
    return None


def _as_field_type(value: Any) -> Optional[FieldType]:
    code = _as_int(value)
    if code is None:
        return None
    try:
        return FieldType(code)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class Section:
    name: str
    label: str


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """One discovered, typed device capability."""

    name: str
    type: FieldType
    label: str = ""
    min: Optional[int] = None
    max: Optional[int] = None
    options: tuple[str, ...] = ()
    section: str = DEFAULT_SECTION
    display_labels: tuple[str, ...] = ()
    label_to_index: Mapping[str, int] = field(default_factory=dict, compare=False)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], field_type: FieldType, section: str) -> "FieldDefinition":
        name = str(raw["name"])
        options: tuple[str, ...] = ()
        display: tuple[str, ...] = ()
        label_to_index: dict[str, int] = {}

        raw_options = raw.get("options")
        if field_type is FieldType.SELECT and isinstance(raw_options, list):
            options = tuple(str(opt) for opt in raw_options)
            display = display_labels_for(options)
            label_to_index = {label: idx for idx, label in enumerate(display)}

        return cls(
            name=name,
            type=field_type,
            label=str(raw.get("label") or name),
            min=_as_int(raw.get("min")),
            max=_as_int(raw.get("max")),
            options=options,
            section=section,
            display_labels=display,
            label_to_index=label_to_index,
        )

    @property
    def command_name(self) -> str:
        return command_name_for(self.name)

    def index_for(self, value: str) -> Optional[int]:
        """Resolve a display label or a raw option string to its index."""

        idx = self.label_to_index.get(value)
        if idx is not None:
            return idx
        try:
            return self.options.index(value)
        except ValueError:
            return None


class SchemaRegistry:
    """Session-owned view of the fields a controller currently exposes."""

    def __init__(self) -> None:
        self._fields: dict[str, FieldDefinition] = {}
        self._sections: tuple[Section, ...] = ()
        self._commands: dict[str, FieldDefinition] = {}
        self._aliases: dict[str, str] = {}
        self.generation = 0

    # ------------------------------------------------------------------
    # rebuild
    # ------------------------------------------------------------------
    def rebuild(self, raw_fields: Any) -> int:
        """Replace the registry from a discovery payload.

        Returns the number of fields. Raises :class:`SchemaError` when the
        payload is not a list or contains no usable field; the current
        contents are kept in that case.
        """

        if not isinstance(raw_fields, list):
            raise SchemaError(
                f"Field structure must be a list, got {type(raw_fields).__name__}"
            )

        fields: dict[str, FieldDefinition] = {}
        sections: list[Section] = []
        current_section = DEFAULT_SECTION

        for raw in raw_fields:
            if not isinstance(raw, dict):
                continue

            name = raw.get("name")
            name = str(name) if name not in (None, "") else ""
            field_type = _as_field_type(raw.get("type"))

            if field_type is FieldType.SECTION:
                current_section = name
                sections.append(Section(name=name, label=str(raw.get("label") or name)))
                continue
            if field_type is FieldType.TITLE:
                continue
            if not name or field_type is None or field_type is FieldType.INVALID:
                _LOGGER.debug("Discarding unusable field entry %s", raw)
                continue

            fields[name] = FieldDefinition.from_raw(raw, field_type, current_section)

        if not fields:
            raise SchemaError("Field structure contains no usable fields")

        commands, aliases = self._build_commands(fields)

        self._fields = fields
        self._sections = tuple(sections)
        self._commands = commands
        self._aliases = aliases
        self.generation += 1

        _LOGGER.debug(
            "Schema rebuilt (generation %s): %d fields, %d sections, %d commands",
            self.generation,
            len(fields),
            len(sections),
            len(commands),
        )
        return len(fields)

    @staticmethod
    def _build_commands(
        fields: Mapping[str, FieldDefinition],
    ) -> tuple[dict[str, FieldDefinition], dict[str, str]]:
        commands: dict[str, FieldDefinition] = {}
        aliases: dict[str, str] = {}
        for fdef in fields.values():
            if fdef.type not in SETTABLE_TYPES:
                continue
            commands[fdef.command_name] = fdef
            if fdef.type is FieldType.BOOLEAN and fdef.name == POWER_FIELD:
                for alias in POWER_ALIASES:
                    commands[alias] = fdef
                    aliases[alias] = fdef.name
        return commands, aliases

    def clear(self) -> None:
        self._fields = {}
        self._sections = ()
        self._commands = {}
        self._aliases = {}

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    @property
    def ready(self) -> bool:
        return bool(self._fields)

    @property
    def fields(self) -> tuple[FieldDefinition, ...]:
        return tuple(self._fields.values())

    @property
    def sections(self) -> tuple[Section, ...]:
        return self._sections

    def field(self, name: str) -> Optional[FieldDefinition]:
        return self._fields.get(name)

    def command_table(self, sections: Optional[Iterable[str]] = None) -> dict[str, FieldDefinition]:
        """Return settable command name -> field, optionally limited to sections."""

        if sections is None:
            return dict(self._commands)
        allowed = set(sections)
        return {cmd: fdef for cmd, fdef in self._commands.items() if fdef.section in allowed}

    def resolve(self, command: str) -> Optional[FieldDefinition]:
        """Look up a command by its command name or by the raw field name."""

        fdef = self._commands.get(command)
        if fdef is not None:
            return fdef
        fdef = self._fields.get(command)
        if fdef is not None and fdef.type in SETTABLE_TYPES:
            return fdef
        return None

    def is_alias(self, command: str) -> bool:
        return command in self._aliases

    def as_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "sections": [{"name": s.name, "label": s.label} for s in self._sections],
            "fields": [
                {
                    "name": f.name,
                    "label": f.label,
                    "type": f.type.name.lower(),
                    "min": f.min,
                    "max": f.max,
                    "options": list(f.options),
                    "section": f.section,
                }
                for f in self._fields.values()
            ],
        }


__all__ = [
    "DEFAULT_SECTION",
    "FieldDefinition",
    "FieldType",
    "POWER_ALIASES",
    "POWER_FIELD",
    "SETTABLE_TYPES",
    "SchemaRegistry",
    "Section",
    "command_name_for",
    "display_labels_for",
]
