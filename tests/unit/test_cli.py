"""Unit tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from grounded_chat import __main__ as cli
from grounded_chat.runtime import Runtime

TABLE = """\
| Fact | Source |
|------|--------|
| Paris is the capital of France | atlas |
| The sky is blue | physics |
"""


class TestParser:
    def test_ingest_defaults(self) -> None:
        args = cli.build_parser().parse_args(["ingest"])
        assert args.command == "ingest"
        assert args.file == "data.md"

    def test_serve_options(self) -> None:
        args = cli.build_parser().parse_args(["serve", "--host", "127.0.0.1", "--port", "9000"])
        assert (args.host, args.port) == ("127.0.0.1", 9000)

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestIngestCommand:
    @pytest.fixture(autouse=True)
    def _quiet_logging(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # Log records would share stdout with the report
        monkeypatch.setattr(cli, "setup_logging", lambda level: None)

    def test_ingest_prints_report(
        self, runtime: Runtime, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "data.md"
        source.write_text(TABLE, encoding="utf-8")
        monkeypatch.setattr("grounded_chat.runtime.build_runtime", lambda **kwargs: runtime)
        monkeypatch.setattr(runtime.settings, "embed_interval_seconds", 0.0)

        assert cli.main(["ingest", "--file", str(source)]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["state"] == "done"
        assert report["chunks_ingested"] == 2
        assert [c.text for c in runtime.store.all_chunks()] == [
            "Paris is the capital of France",
            "The sky is blue",
        ]

    def test_missing_file_fails(
        self, runtime: Runtime, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("grounded_chat.runtime.build_runtime", lambda **kwargs: runtime)
        assert cli.main(["ingest", "--file", str(tmp_path / "missing.md")]) == 1
