"""
Unit tests for ResearcherRecord model.
"""

import pytest
from pydantic import ValidationError

from scholar_matcher.models.analysis import MatchType, MatchVerdict
from scholar_matcher.models.researcher import ResearcherRecord, ResearcherStatus


class TestResearcherRecordValidation:
    """Test status-dependent field rules."""

    def test_awaiting_record_with_defaults(self):
        # Act
        record = ResearcherRecord(id="r1", name="Jane Smith")

        # Assert
        assert record.status == ResearcherStatus.AWAITING_SOURCE_ID
        assert record.source_id is None
        assert record.is_favorite is False
        assert record.profile_url is None
        assert record.is_match is None

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(id="r1", name="   ")

    def test_blank_source_id_normalized_to_none(self):
        # Act
        record = ResearcherRecord(id="r1", name="Jane", source_id="  ")

        # Assert
        assert record.source_id is None

    def test_pending_requires_source_id(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(id="r1", name="Jane", status=ResearcherStatus.PENDING)

    def test_awaiting_cannot_carry_source_id(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(id="r1", name="Jane", source_id="abc")

    def test_completed_requires_summary(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(
                id="r1", name="Jane", status=ResearcherStatus.COMPLETED, source_id="abc"
            )

    def test_results_only_on_completed(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(
                id="r1", name="Jane", status=ResearcherStatus.PENDING, source_id="abc", summary="x"
            )

    def test_error_requires_message(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(id="r1", name="Jane", status=ResearcherStatus.ERROR, source_id="abc")

    def test_error_fields_only_on_error(self):
        with pytest.raises(ValidationError):
            ResearcherRecord(
                id="r1", name="Jane", status=ResearcherStatus.PENDING, source_id="abc", error_message="x"
            )

    def test_records_are_immutable(self):
        # Arrange
        record = ResearcherRecord(id="r1", name="Jane")

        # Act / Assert
        with pytest.raises(ValidationError):
            record.name = "Other"


class TestResearcherRecordProperties:
    """Test derived properties."""

    def test_completed_record_exposes_match_fields(self):
        # Arrange
        record = ResearcherRecord(
            id="r1",
            name="Jane",
            status=ResearcherStatus.COMPLETED,
            source_id="AbC_12",
            summary="Imaging research.",
            match=MatchVerdict(match_type=MatchType.LOW, is_match=True, matched_interests=["Robotics", "NLP"]),
        )

        # Assert
        assert record.is_match is True
        assert record.match_type == MatchType.LOW
        assert record.matched_interests == ["Robotics", "NLP"]
        assert record.profile_url == "https://scholar.google.com/citations?user=AbC_12"

    def test_round_trips_through_json_dump(self):
        """Test that a dumped record validates back to an equal record."""
        # Arrange
        record = ResearcherRecord(
            id="r1",
            name="Jane",
            status=ResearcherStatus.ERROR,
            source_id="abc",
            error_message="Rate limit exceeded (429)",
            error_kind="RateLimitError",
            is_favorite=True,
        )

        # Act
        restored = ResearcherRecord(**record.model_dump(mode="json"))

        # Assert
        assert restored == record
