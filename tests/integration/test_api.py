"""Integration tests for the HTTP trigger."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.api import app as api_module
from src.api.app import create_app
from src.lib.config import PipelineConfig


def _client(**config) -> TestClient:
    return TestClient(create_app(PipelineConfig(**config)))


class TestHealth:
    """Tests for GET /health."""

    def test_reports_ok(self) -> None:
        response = _client().get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestProcess:
    """Tests for POST /process."""

    def test_processes_configured_file(self, sample_csv_file: Path, tmp_db_path: Path) -> None:
        client = _client(source_path=str(sample_csv_file), db_path=str(tmp_db_path), batch_size=2)

        response = client.post("/process")

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 5
        assert body["headers"][:3] == ["name.firstName", "name.lastName", "age"]
        assert body["totalUsersInDB"] == 5
        assert body["distributionPercentages"] == {
            "<20": 20, "20-40": 40, "40-60": 20, ">60": 20,
        }

    def test_missing_source_is_config_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict] = []
        monkeypatch.setattr(api_module, "run_pipeline", lambda **kwargs: calls.append(kwargs))

        response = _client(source_path=None).post("/process")

        assert response.status_code == 400
        assert response.json() == {"error": "CSV_FILE_PATH not configured"}
        assert calls == []

    def test_core_failure_returns_message(self, write_csv, tmp_db_path: Path) -> None:
        path = write_csv("name.firstName,name.lastName,age\nAnn,Lee,old\n")
        client = _client(source_path=str(path), db_path=str(tmp_db_path))

        response = client.post("/process")

        assert response.status_code == 500
        assert response.json() == {"error": "Error at line 2: Invalid age value: 'old'"}

    def test_missing_file_returns_failure(self, tmp_path: Path, tmp_db_path: Path) -> None:
        client = _client(source_path=str(tmp_path / "missing.csv"), db_path=str(tmp_db_path))

        response = client.post("/process")

        assert response.status_code == 500
        assert "CSV file not found" in response.json()["error"]

    def test_unusable_database_path_returns_error_body(
        self, sample_csv_file: Path, tmp_path: Path,
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        client = _client(source_path=str(sample_csv_file), db_path=str(blocker / "users.duckdb"))

        response = client.post("/process")

        assert response.status_code == 500
        assert "Could not open database" in response.json()["error"]
