"""
Unit tests for ResearcherAnalysisCoordinator.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from scholar_matcher.agents.analysis_pipeline import AnalysisPipeline
from scholar_matcher.coordinator import ResearcherAnalysisCoordinator
from scholar_matcher.errors import (
    ConfigurationError,
    EmptyProfileError,
    InvalidTransitionError,
    RateLimitError,
)
from scholar_matcher.models.analysis import MatchType
from scholar_matcher.models.researcher import ResearcherStatus
from scholar_matcher.utils.retry_policy import RetryPolicy
from scholar_matcher.utils.session_store import SessionStore


@pytest.fixture
def build(publication_source, evidence_analyzer, recording_sleep):
    """Build a coordinator around fake collaborators; keyword overrides allowed."""

    def _build(source=None, analyzer=None, **kwargs):
        pipeline = AnalysisPipeline(source or publication_source, analyzer or evidence_analyzer)
        kwargs.setdefault("retry_policy", RetryPolicy(max_retries=2, base_delay=1.0, sleep=recording_sleep))
        return ResearcherAnalysisCoordinator(pipeline=pipeline, **kwargs)

    return _build


class TestSubmit:
    """Test cases for single-record submission."""

    @pytest.mark.asyncio
    async def test_submit_completes_record(self, build, make_analyzer):
        # Arrange
        coordinator = build(analyzer=make_analyzer(matched={"Jane Smith": ["Robotics", "NLP"]}))
        coordinator.set_interests("Medical Imaging, Robotics, NLP")
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")

        # Act
        result = await coordinator.submit(record.id)

        # Assert
        assert result.status == ResearcherStatus.COMPLETED
        assert result.match_type == MatchType.LOW
        assert result.matched_interests == ["Robotics", "NLP"]

    @pytest.mark.asyncio
    async def test_submit_failure_moves_to_error_without_raising(self, build, make_source):
        # Arrange
        coordinator = build(source=make_source({"abc": EmptyProfileError("abc")}))
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")

        # Act
        result = await coordinator.submit(record.id)

        # Assert
        assert result.status == ResearcherStatus.ERROR
        assert result.error_kind == "EmptyProfileError"
        assert "abc" in result.error_message

    @pytest.mark.asyncio
    async def test_submit_retries_transient_failures(self, build, make_source, recording_sleep, articles):
        # Arrange
        source = make_source({"abc": [RateLimitError(), RateLimitError(), articles]})
        coordinator = build(source=source)
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")

        # Act
        result = await coordinator.submit(record.id)

        # Assert
        assert result.status == ResearcherStatus.COMPLETED
        assert source.calls == ["abc", "abc", "abc"]
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_submit_without_source_id_rejected(self, build):
        # Arrange
        coordinator = build()
        record = coordinator.create_records(["Jane Smith"])[0]

        # Act / Assert
        with pytest.raises(InvalidTransitionError):
            await coordinator.submit(record.id)

    @pytest.mark.asyncio
    async def test_duplicate_submit_while_analyzing_is_noop(self, build, make_source):
        # Arrange
        source = make_source(delay=0.05)
        coordinator = build(source=source)
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")

        # Act
        first, second = await asyncio.gather(coordinator.submit(record.id), coordinator.submit(record.id))

        # Assert
        assert source.calls == ["abc"]
        assert second.status == ResearcherStatus.ANALYZING
        assert first.status == ResearcherStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded_and_raised(self, build, evidence_analyzer):
        # Arrange
        evidence_analyzer.analyze = AsyncMock(side_effect=RuntimeError("kaboom"))
        coordinator = build()
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")

        # Act / Assert
        with pytest.raises(RuntimeError):
            await coordinator.submit(record.id)

        assert coordinator.store.get(record.id).status == ResearcherStatus.ERROR

    @pytest.mark.asyncio
    async def test_commit_failure_moves_record_to_error(self, build, mocker):
        # Arrange
        coordinator = build()
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")
        mocker.patch.object(coordinator.store, "complete", side_effect=RuntimeError("commit failed"))

        # Act / Assert
        with pytest.raises(RuntimeError):
            await coordinator.submit(record.id)

        failed = coordinator.store.get(record.id)
        assert failed.status == ResearcherStatus.ERROR
        assert failed.error_message == "commit failed"
        assert coordinator.store.failed_with_source_id() == [failed]


class TestBatches:
    """Test cases for analyze_all and retry_failed."""

    @pytest.mark.asyncio
    async def test_analyze_all_skips_ineligible_records(self, build, make_source):
        # Arrange
        source = make_source({"bad": EmptyProfileError("bad")})
        coordinator = build(source=source, concurrency=2)
        created = coordinator.create_records(["No Id", "Good One", "Good Two", "Bad One"])
        coordinator.link_source_id(created[1].id, "g1")
        coordinator.link_source_id(created[2].id, "g2")
        coordinator.link_source_id(created[3].id, "bad")

        # Act
        report = await coordinator.analyze_all()

        # Assert
        assert report.total == 3
        assert report.succeeded == 2
        assert report.failed == 1
        assert report.failures[0].record_id == created[3].id
        statuses = [r.status for r in coordinator.records()]
        assert statuses == [
            ResearcherStatus.AWAITING_SOURCE_ID,
            ResearcherStatus.COMPLETED,
            ResearcherStatus.COMPLETED,
            ResearcherStatus.ERROR,
        ]

    @pytest.mark.asyncio
    async def test_analyze_all_respects_concurrency(self, build, make_source):
        # Arrange
        source = make_source(delay=0.01)
        coordinator = build(source=source, concurrency=3)
        for i, record in enumerate(coordinator.create_records([f"Researcher {i}" for i in range(10)])):
            coordinator.link_source_id(record.id, f"id{i}")

        # Act
        report = await coordinator.analyze_all()

        # Assert
        assert report.succeeded == 10
        assert source.max_active == 3

    @pytest.mark.asyncio
    async def test_overlapping_batches_do_not_double_process(self, build, make_source):
        # Arrange
        source = make_source(delay=0.02)
        coordinator = build(source=source, concurrency=2)
        for i, record in enumerate(coordinator.create_records(["Ann Lee", "Bob Ray", "Cy Doe"])):
            coordinator.link_source_id(record.id, f"id{i}")

        # Act
        first, second = await asyncio.gather(coordinator.analyze_all(), coordinator.analyze_all())

        # Assert
        assert sorted(source.calls) == ["id0", "id1", "id2"]
        assert first.total + second.total == 3

    @pytest.mark.asyncio
    async def test_retry_failed_only_touches_error_records(self, build, make_source, articles):
        # Arrange
        source = make_source({"flaky": [EmptyProfileError("flaky"), articles]})
        coordinator = build(source=source)
        done, flaky = coordinator.create_records(["Done Person", "Flaky Person"])
        coordinator.link_source_id(done.id, "ok")
        coordinator.link_source_id(flaky.id, "flaky")
        await coordinator.analyze_all()
        coordinator.toggle_favorite(flaky.id)
        source.calls.clear()

        # Act
        report = await coordinator.retry_failed()

        # Assert
        assert source.calls == ["flaky"]
        assert report.succeeded == 1
        assert coordinator.store.get(flaky.id).status == ResearcherStatus.COMPLETED
        assert coordinator.store.get(flaky.id).is_favorite is True


class TestRecordManagement:
    """Test cases for record management and persistence."""

    @pytest.mark.asyncio
    async def test_extract_and_create_replaces_non_favorites(self, build, mocker):
        # Arrange
        extractor = mocker.Mock()
        extractor.extract = AsyncMock(return_value=["Ada Lovelace", "Alan Turing"])
        coordinator = build(name_extractor=extractor)
        keep = coordinator.create_records(["Kept Favorite"])[0]
        coordinator.toggle_favorite(keep.id)
        coordinator.create_records(["Dropped Person"])

        # Act
        created = await coordinator.extract_and_create("Faculty: Ada Lovelace, Alan Turing")

        # Assert
        assert [r.name for r in created] == ["Ada Lovelace", "Alan Turing"]
        assert [r.name for r in coordinator.records()] == ["Kept Favorite", "Ada Lovelace", "Alan Turing"]

    def test_create_record_with_source_id_starts_pending(self, build):
        # Act
        record = build().create_record("jane smith", source_id="abc")

        # Assert
        assert record.name == "Jane Smith"
        assert record.status == ResearcherStatus.PENDING
        assert record.source_id == "abc"

    def test_create_record_skips_existing_name(self, build):
        # Arrange
        coordinator = build()
        existing = coordinator.create_records(["Jane Smith"])[0]

        # Act
        record = coordinator.create_record("JANE  SMITH", source_id="abc")

        # Assert
        assert record is None
        assert coordinator.records() == [existing]

    @pytest.mark.asyncio
    async def test_extract_without_extractor_is_configuration_error(self, build):
        with pytest.raises(ConfigurationError):
            await build().extract_and_create("text")

    def test_mutations_are_persisted(self, build, tmp_path):
        # Arrange
        session_store = SessionStore(state_dir=tmp_path)
        coordinator = build(session_store=session_store)

        # Act
        record = coordinator.create_records(["Jane Smith"])[0]
        coordinator.link_source_id(record.id, "abc")
        coordinator.toggle_favorite(record.id)
        coordinator.set_interests("NLP; Robotics")

        # Assert
        saved, interests_text = session_store.load()
        assert saved[0].source_id == "abc"
        assert saved[0].is_favorite is True
        assert interests_text == "NLP; Robotics"

    def test_load_restores_session(self, build, tmp_path):
        # Arrange
        session_store = SessionStore(state_dir=tmp_path)
        first = build(session_store=session_store)
        first.create_records(["Jane Smith"])
        first.set_interests("NLP")
        second = build(session_store=session_store)

        # Act
        second.load()

        # Assert
        assert [r.name for r in second.records()] == ["Jane Smith"]
        assert second.user_interests == ["NLP"]

    def test_clear_and_delete(self, build):
        # Arrange
        coordinator = build()
        a, b, c = coordinator.create_records(["Ann Lee", "Bob Ray", "Cy Doe"])
        coordinator.toggle_favorite(a.id)
        coordinator.delete(b.id)

        # Act
        removed = coordinator.clear_non_favorites()

        # Assert
        assert removed == 1
        assert [r.id for r in coordinator.records()] == [a.id]

    @pytest.mark.asyncio
    async def test_find_candidates_requires_search_support(self, build):
        with pytest.raises(ConfigurationError):
            await build().find_source_id_candidates("Jane Smith")
