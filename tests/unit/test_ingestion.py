"""Unit tests for the ingestion pipeline and its rate limiter."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from grounded_chat.errors import PersistenceError
from grounded_chat.ingestion.pipeline import IngestionPipeline, IngestionState, RateLimiter
from grounded_chat.retrieval.index import IndexHandle

TABLE = """\
| text |
|------|
| Paris is the capital of France |
| The sky is blue |
| Water boils at 100 degrees Celsius |
"""


class FakeClock:
    """Monotonic clock that only moves when slept on or advanced."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def pipeline(store, gateway, clock: FakeClock) -> IngestionPipeline:
    limiter = RateLimiter(0.04, clock=clock, sleep=clock.sleep)
    return IngestionPipeline(store, gateway, IndexHandle(), rate_limiter=limiter)


# ──────────────────────────────────────────────────────────────────────
# RateLimiter
# ──────────────────────────────────────────────────────────────────────


class TestRateLimiter:
    def test_first_call_does_not_sleep(self, clock: FakeClock) -> None:
        limiter = RateLimiter(0.04, clock=clock, sleep=clock.sleep)
        limiter.wait()
        assert clock.sleeps == []

    def test_back_to_back_calls_are_spaced(self, clock: FakeClock) -> None:
        limiter = RateLimiter(0.04, clock=clock, sleep=clock.sleep)
        starts = []
        for _ in range(4):
            limiter.wait()
            starts.append(clock.now)
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(g >= 0.04 - 1e-9 for g in gaps)

    def test_no_sleep_when_interval_already_elapsed(self, clock: FakeClock) -> None:
        limiter = RateLimiter(0.04, clock=clock, sleep=clock.sleep)
        limiter.wait()
        clock.now += 1.0
        limiter.wait()
        assert clock.sleeps == []


# ──────────────────────────────────────────────────────────────────────
# IngestionPipeline
# ──────────────────────────────────────────────────────────────────────


class TestIngestionPipeline:
    def test_starts_idle(self, pipeline: IngestionPipeline) -> None:
        assert pipeline.state is IngestionState.IDLE

    def test_ingests_every_row(self, pipeline: IngestionPipeline, store, gateway) -> None:
        report = pipeline.ingest_text(TABLE)

        assert report.state is IngestionState.DONE
        assert pipeline.state is IngestionState.DONE
        assert report.rows_parsed == 3
        assert report.chunks_ingested == 3
        assert [c.text for c in store.all_chunks()] == [
            "Paris is the capital of France",
            "The sky is blue",
            "Water boils at 100 degrees Celsius",
        ]
        assert gateway.embed_calls == [c.text for c in store.all_chunks()]

    def test_index_is_reloaded(self, store, gateway, clock: FakeClock) -> None:
        handle = IndexHandle()
        limiter = RateLimiter(0.0, clock=clock, sleep=clock.sleep)
        IngestionPipeline(store, gateway, handle, rate_limiter=limiter).ingest_text(TABLE)
        assert len(handle.snapshot().rankable) == 3

    def test_embedding_calls_are_paced(self, pipeline: IngestionPipeline, clock: FakeClock) -> None:
        pipeline.ingest_text(TABLE)
        assert clock.sleeps == pytest.approx([0.04, 0.04])

    def test_failed_embedding_skips_only_that_chunk(self, pipeline: IngestionPipeline, store, gateway) -> None:
        gateway.failing_embeds.add("The sky is blue")
        report = pipeline.ingest_text(TABLE)

        assert report.state is IngestionState.DONE
        assert report.chunks_ingested == 2
        assert report.chunks_failed == 1
        assert "The sky is blue" not in [c.text for c in store.all_chunks()]

    def test_failed_insert_skips_only_that_chunk(self, pipeline: IngestionPipeline, store) -> None:
        original = store.add_chunk

        def flaky(text, embedding):
            if text == "The sky is blue":
                raise PersistenceError("disk full")
            return original(text, embedding)

        with patch.object(store, "add_chunk", side_effect=flaky):
            report = pipeline.ingest_text(TABLE)
        assert report.chunks_ingested == 2
        assert report.chunks_failed == 1

    def test_replaces_previous_chunks(self, pipeline: IngestionPipeline, store) -> None:
        store.add_chunk("stale fact", [0.0, 1.0])
        pipeline.ingest_text(TABLE)
        assert "stale fact" not in [c.text for c in store.all_chunks()]

    def test_empty_source_is_successful_and_keeps_existing_chunks(
        self, pipeline: IngestionPipeline, store, gateway
    ) -> None:
        store.add_chunk("kept fact", [0.0, 1.0])
        report = pipeline.ingest_text("| text |\n|---|\n")

        assert report.state is IngestionState.DONE
        assert report.chunks_ingested == 0
        assert gateway.embed_calls == []
        assert [c.text for c in store.all_chunks()] == ["kept fact"]

    def test_clear_failure_marks_failed(self, pipeline: IngestionPipeline, store) -> None:
        with patch.object(store, "clear_chunks", side_effect=PersistenceError("locked")):
            with pytest.raises(PersistenceError):
                pipeline.ingest_text(TABLE)
        assert pipeline.state is IngestionState.FAILED

    def test_ingest_file(self, pipeline: IngestionPipeline, tmp_path: Path) -> None:
        path = tmp_path / "data.md"
        path.write_text(TABLE, encoding="utf-8")
        assert pipeline.ingest_file(path).chunks_ingested == 3

    def test_missing_file_marks_failed(self, pipeline: IngestionPipeline, tmp_path: Path) -> None:
        with pytest.raises(Exception):
            pipeline.ingest_file(tmp_path / "nope.md")
        assert pipeline.state is IngestionState.FAILED
