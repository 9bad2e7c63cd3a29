"""Analysis result models: keyword evidence, match verdicts and pipeline outcomes."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    """Match tier between a researcher's work and the user's interests."""

    NONE = "NONE"
    LOW = "LOW"
    PARTIAL = "PARTIAL"
    HIGH = "HIGH"
    PERFECT = "PERFECT"


class SupportingReference(BaseModel):
    """A publication cited as evidence for a keyword."""

    model_config = ConfigDict(frozen=True)

    title: str
    year: Optional[str] = None
    citation_count: Optional[int] = Field(default=None, ge=0)


class KeywordEvidence(BaseModel):
    """A research keyword with the reasoning and publications backing it."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    reasoning: str = ""
    supporting_references: list[SupportingReference] = Field(default_factory=list)


class MatchVerdict(BaseModel):
    """Classifier verdict.

    The three fields always travel together so a record can never carry a
    tier without its flag and matched subset.
    """

    model_config = ConfigDict(frozen=True)

    match_type: MatchType
    is_match: bool
    matched_interests: list[str] = Field(default_factory=list)


class EvidenceReport(BaseModel):
    """Raw result returned by an evidence analyzer collaborator."""

    summary: str
    keyword_evidence: list[KeywordEvidence] = Field(default_factory=list)
    raw_matched_interests: list[str] = Field(default_factory=list)
    match_reason: Optional[str] = None


class AnalysisOutcome(BaseModel):
    """Combined result of one successful pipeline run for one researcher."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(min_length=1)
    keyword_evidence: list[KeywordEvidence] = Field(default_factory=list)
    match: Optional[MatchVerdict] = None
    match_reason: Optional[str] = None
