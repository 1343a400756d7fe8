from __future__ import annotations

from pathlib import Path

import pytest

from app.harvester import config


@pytest.fixture(autouse=True)
def _configure_temp_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    monkeypatch.setattr(config, "DATA_DIR", data_dir)
    monkeypatch.setattr(config, "OUTPUT_DIR", data_dir / "output")
    monkeypatch.setattr(config, "LOG_DIR", data_dir / "logs")
    monkeypatch.setattr(config, "LOG_FILE", data_dir / "logs" / "latest.log")
    monkeypatch.setattr(config, "RUNS_DIR", data_dir / "runs")
    monkeypatch.setattr(config, "EXPORTS_DIR", data_dir / "exports")
    monkeypatch.setattr(config, "SNAPSHOT_DIR", data_dir / "snapshots")
    monkeypatch.setattr(config, "HARVEST_BACKEND", "snapshot")
    return data_dir
