import argparse
import json

import pytest

from leadfinder.core.config import Settings
from leadfinder.core.models import BusinessRecord, InvalidRequest
from leadfinder.jobs import run_search


class DummyOrchestrator:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    async def search(self, query, location, filters, on_progress=None):
        self.calls.append((query, location, filters))
        if self.error is not None:
            raise self.error
        if on_progress:
            on_progress(30, filters.target_count)
        return self.records


def test_run_search_job_builds_filters():
    orchestrator = DummyOrchestrator(records=[BusinessRecord(name="Acme")])

    records = run_search.run_search_job(
        query="padaria",
        latitude=-23.96,
        longitude=-46.33,
        city=" Santos ",
        state="sp",
        radius_km=25,
        target_count=60,
        orchestrator=orchestrator,
    )

    assert [r.name for r in records] == ["Acme"]
    query, location, filters = orchestrator.calls[0]
    assert query == "padaria"
    assert location.latitude == -23.96
    assert filters.city == "Santos"
    assert filters.state == "SP"
    assert filters.target_count == 60


def test_build_parser_defaults():
    parser = run_search.build_parser()
    args = parser.parse_args(["--query", "padaria"])

    assert isinstance(parser, argparse.ArgumentParser)
    assert args.query == "padaria"
    assert args.target_count == 50
    assert args.radius_km == 0.0
    assert args.city is None


def test_main_prints_wire_payload(monkeypatch, capsys):
    monkeypatch.setattr(run_search, "run_search_job", lambda **kwargs: [BusinessRecord(name="Acme", phone="1")])

    run_search.main(["--query", "padaria"])

    printed = json.loads(capsys.readouterr().out)
    assert printed == [
        {"nome": "Acme", "telefone": "1", "email": None, "instagram": None, "facebook": None, "linkedin": None}
    ]


def test_main_exits_on_invalid_request(monkeypatch):
    def fail(**kwargs):
        raise InvalidRequest("Query must not be empty")

    monkeypatch.setattr(run_search, "run_search_job", fail)

    with pytest.raises(SystemExit) as excinfo:
        run_search.main(["--query", " "])

    assert excinfo.value.code == 2


def test_main_exits_when_backend_unavailable(monkeypatch, caplog):
    monkeypatch.setattr(run_search, "get_settings", lambda: Settings(gemini_api_key=""))

    with caplog.at_level("ERROR"):
        with pytest.raises(SystemExit) as excinfo:
            run_search.main(["--query", "padaria"])

    assert excinfo.value.code == 1
    assert "GEMINI_API_KEY is required" in " ".join(caplog.messages)
