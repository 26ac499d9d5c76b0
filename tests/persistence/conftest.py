"""Shared fixtures for persistence engine tests.

Everything runs in memory or under ``tmp_path``; no external services.
"""

from __future__ import annotations

import pytest
from factories import make_snapshot

from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine
from modelkeeper.persistence.models.workspace import WorkspaceSnapshot
from modelkeeper.persistence.settings import ModelkeeperSettings


@pytest.fixture
def snapshot() -> WorkspaceSnapshot:
    return make_snapshot()


@pytest.fixture
def engine() -> YamlFormatEngine:
    return YamlFormatEngine()


@pytest.fixture
def settings(tmp_path) -> ModelkeeperSettings:
    return ModelkeeperSettings(
        data_root=str(tmp_path / "data"),
        archive_dir=str(tmp_path / "archives"),
    )
