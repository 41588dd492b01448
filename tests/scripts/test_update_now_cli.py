from __future__ import annotations

import importlib.util
import json
from pathlib import Path

from ingestion.models.domain import SearchResult
from ingestion.services import lock_manager
from ingestion.settings import NEWS_UPDATE_JOB
from ingestion.tasks import update as update_mod

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "update_now.py"


def _load_cli():
    module_spec = importlib.util.spec_from_file_location("update_now_cli", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class OneHitConnector:
    def search(self, query, count):
        slug = query.replace(" ", "-")
        return [SearchResult(title=f"{query} headline", link=f"https://ex.com/{slug}")]


def test_cli_runs_update_and_prints_report(capsys):
    update_mod.CONNECTOR_FACTORY = OneHitConnector
    cli = _load_cli()

    assert cli.main([]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["acquired"] is True
    assert report["categories"]["technology"] == {"inserted": 1, "modified": 0}


def test_cli_status_without_lock(capsys):
    assert _load_cli().main(["--status"]) == 0
    assert capsys.readouterr().out.strip() == "Lock: none"


def test_cli_exits_3_when_lock_is_held(capsys, session_factory):
    lock_manager.acquire(session_factory, NEWS_UPDATE_JOB, "other-host_1")
    cli = _load_cli()

    assert cli.main([]) == 3
    assert json.loads(capsys.readouterr().out)["acquired"] is False
