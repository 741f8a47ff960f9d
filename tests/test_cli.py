"""Tests for the CLI helper module."""

import json
from importlib import import_module

import pytest


def _cli():
    return import_module("custom_components.led_controller.lib.cli")


def test_parse_hex_accepts_common_formats() -> None:
    cli = _cli()

    assert cli.parse_hex("81 02 7b 7d") == b"\x81\x02{}"
    assert cli.parse_hex("\\x81\\x02\\x7b\\x7d") == b"\x81\x02{}"
    assert cli.parse_hex("81:02:7b:7d") == b"\x81\x02{}"


def test_split_host() -> None:
    cli = _cli()

    assert cli.split_host("192.168.1.50") == ("192.168.1.50", 80)
    assert cli.split_host("192.168.1.50:8080") == ("192.168.1.50", 8080)


def test_decode_prints_messages(capsys) -> None:
    cli = _cli()
    payload = b'{"name":"power","value":1}'
    frame = bytes([0x81, len(payload)]) + payload

    assert cli.main(["decode", frame.hex()]) == 0

    out = capsys.readouterr().out
    assert '{"name": "power", "value": 1}' in out


def test_commands_from_file(tmp_path, capsys) -> None:
    cli = _cli()
    structure = tmp_path / "all.json"
    structure.write_text(
        json.dumps(
            [
                {"name": "power", "type": 1},
                {"name": "brightness", "type": 0, "min": 0, "max": 255},
            ]
        ),
        encoding="utf-8",
    )

    assert cli.main(["commands", "--file", str(structure)]) == 0

    out = capsys.readouterr().out
    assert "refresh brightness:slider,0,1,255 on off" in out


def test_commands_with_unusable_structure_fails(tmp_path, capsys) -> None:
    cli = _cli()
    structure = tmp_path / "all.json"
    structure.write_text("[]", encoding="utf-8")

    assert cli.main(["commands", "--file", str(structure)]) == 1
    assert "error:" in capsys.readouterr().err


def test_commands_requires_target_or_file() -> None:
    cli = _cli()

    with pytest.raises(SystemExit):
        cli.main(["commands"])
