"""Researcher record model with analysis status and match results."""

from enum import Enum
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scholar_matcher.models.analysis import KeywordEvidence, MatchType, MatchVerdict


SCHOLAR_PROFILE_URL = "https://scholar.google.com/citations?user={source_id}"


class ResearcherStatus(str, Enum):
    """Analysis status of a researcher record."""

    AWAITING_SOURCE_ID = "AWAITING_SOURCE_ID"
    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class ResearcherRecord(BaseModel):
    """Represents one academic staff member and the state of their analysis.

    Records are immutable; ResearcherRecordStore replaces the whole record on
    every transition so readers always see a consistent snapshot.

    Attributes:
        id: Opaque unique identifier assigned at creation
        name: Display name
        status: Current analysis status
        source_id: External profile id (Google Scholar author id)
        summary: Research focus summary (COMPLETED only)
        keyword_evidence: Keywords with supporting publications (COMPLETED only)
        match: Classifier verdict (COMPLETED only, and only when interests were supplied)
        match_reason: Analyzer's explanation of the match (COMPLETED only)
        error_message: Human-readable failure detail (ERROR only)
        error_kind: Exception class name of the failure (ERROR only)
        is_favorite: User-toggled flag, independent of status
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: ResearcherStatus = ResearcherStatus.AWAITING_SOURCE_ID
    source_id: Optional[str] = None
    summary: Optional[str] = None
    keyword_evidence: list[KeywordEvidence] = Field(default_factory=list)
    match: Optional[MatchVerdict] = None
    match_reason: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    is_favorite: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank names."""
        if not v.strip():
            raise ValueError("Researcher name must not be empty")
        return v

    @field_validator("source_id")
    @classmethod
    def validate_source_id(cls, v: Optional[str]) -> Optional[str]:
        """Normalize blank source ids to None."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_status_invariants(self) -> "ResearcherRecord":
        """Enforce which fields may be populated in each status."""
        if self.status == ResearcherStatus.COMPLETED:
            if not self.summary or not self.summary.strip():
                raise ValueError("COMPLETED records require a non-empty summary")
        elif (
            self.summary is not None
            or self.keyword_evidence
            or self.match is not None
            or self.match_reason is not None
        ):
            raise ValueError(
                f"Analysis results are only allowed on COMPLETED records (status={self.status.value})"
            )

        if self.status == ResearcherStatus.ERROR:
            if not self.error_message:
                raise ValueError("ERROR records require an error message")
        elif self.error_message is not None or self.error_kind is not None:
            raise ValueError("Error details are only allowed on ERROR records")

        if self.status == ResearcherStatus.AWAITING_SOURCE_ID and self.source_id:
            raise ValueError("AWAITING_SOURCE_ID records cannot carry a source id")

        if (
            self.status in (ResearcherStatus.PENDING, ResearcherStatus.ANALYZING)
            and not self.source_id
        ):
            raise ValueError(f"{self.status.value} records require a source id")

        return self

    @property
    def is_match(self) -> Optional[bool]:
        return self.match.is_match if self.match else None

    @property
    def match_type(self) -> Optional[MatchType]:
        return self.match.match_type if self.match else None

    @property
    def matched_interests(self) -> Optional[list[str]]:
        return list(self.match.matched_interests) if self.match else None

    @property
    def profile_url(self) -> Optional[str]:
        """Google Scholar profile URL for the linked source id."""
        if not self.source_id:
            return None
        return SCHOLAR_PROFILE_URL.format(source_id=quote(self.source_id, safe=""))
