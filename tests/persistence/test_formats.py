"""Unit tests for the YAML/XML format engine and settings."""

from __future__ import annotations

import pytest

from modelkeeper.persistence.errors import FormatEngineError
from modelkeeper.persistence.formats.base import FormatEngine
from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine
from modelkeeper.persistence.models.enums import ResourceKind
from modelkeeper.persistence.settings import ModelkeeperSettings

DMN = (
    '<definitions xmlns="https://www.omg.org/spec/DMN/20191111/MODEL/" '
    'xmlns:camunda="http://camunda.org/schema/1.0/dmn" id="drd">'
    '<decision id="pricing" name="Pricing" camunda:versionTag="1" /></definitions>'
)


def test_engine_satisfies_protocol(engine: YamlFormatEngine) -> None:
    assert isinstance(engine, FormatEngine)


async def test_yaml_roundtrip_keeps_key_order(engine: YamlFormatEngine) -> None:
    payload = {"name": "orders", "id": "x", "columns": [{"name": "id"}], "title": "Größe"}
    text = await engine.to_text(ResourceKind.TABLE, payload)

    assert text.splitlines()[0] == "name: orders"
    assert "Größe" in text
    assert await engine.parse(ResourceKind.TABLE, text) == payload


async def test_invalid_yaml_raises(engine: YamlFormatEngine) -> None:
    with pytest.raises(FormatEngineError):
        await engine.parse(ResourceKind.PRODUCT, "name: [unclosed")
    with pytest.raises(FormatEngineError):
        await engine.parse_manifest("a: b: c")


async def test_parse_xml_extracts_id_and_name(engine: YamlFormatEngine) -> None:
    parsed = await engine.parse(ResourceKind.DECISION, DMN)
    assert parsed == {"id": "drd", "name": "Pricing", "content": DMN}


async def test_parse_xml_without_element_raises(engine: YamlFormatEngine) -> None:
    with pytest.raises(FormatEngineError, match="decision"):
        await engine.parse(ResourceKind.DECISION, "<definitions />")


async def test_render_xml_keeps_matching_content(engine: YamlFormatEngine) -> None:
    assert await engine.to_text(ResourceKind.DECISION, {"id": "drd", "name": "Pricing", "content": DMN}) == DMN


async def test_render_xml_stamps_new_id_and_keeps_namespaces(engine: YamlFormatEngine) -> None:
    new_id = "6f1c1f8e-3c55-4d8e-9d3f-0a4c4b1f2a01"
    text = await engine.to_text(ResourceKind.DECISION, {"id": new_id, "name": "Pricing", "content": DMN})

    assert 'xmlns:camunda="http://camunda.org/schema/1.0/dmn"' in text
    parsed = await engine.parse(ResourceKind.DECISION, text)
    assert (parsed["id"], parsed["name"]) == (new_id, "Pricing")


async def test_render_xml_from_scratch(engine: YamlFormatEngine) -> None:
    text = await engine.to_text(ResourceKind.PROCESS, {"id": "p-1", "name": "Checkout"})
    parsed = await engine.parse(ResourceKind.PROCESS, text)
    assert (parsed["id"], parsed["name"]) == ("p-1", "Checkout")


def test_settings_from_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("MODELKEEPER_DATA_ROOT", str(tmp_path))
    monkeypatch.setenv("MODELKEEPER_DATA_PREFIX", "team")
    monkeypatch.setenv("MODELKEEPER_WRITE_README", "false")

    settings = ModelkeeperSettings()

    assert settings.base_path == tmp_path / "team"
    assert settings.archive_path == tmp_path / "team" / "archives"
    assert settings.write_readme is False
