"""LLM-backed evidence analyzer and name extractor collaborators."""

from typing import Any, Optional, Sequence

from scholar_matcher.errors import MalformedResponseError
from scholar_matcher.models.analysis import EvidenceReport, KeywordEvidence, SupportingReference
from scholar_matcher.models.publication import Article
from scholar_matcher.utils import llm_helpers
from scholar_matcher.utils.logger import get_logger


def _parse_citation_count(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def _parse_keyword(raw: dict[str, Any]) -> KeywordEvidence:
    references = [
        SupportingReference(
            title=paper["title"],
            year=str(paper["year"]) if paper.get("year") not in (None, "") else None,
            citation_count=_parse_citation_count(paper.get("citations")),
        )
        for paper in raw.get("supportingPapers") or []
        if paper.get("title", "").strip()
    ]
    return KeywordEvidence(
        keyword=raw["keyword"].strip(),
        reasoning=(raw.get("reasoning") or "").strip(),
        supporting_references=references,
    )


def build_evidence_report(payload: dict[str, Any]) -> EvidenceReport:
    """Convert a validated LLM payload into an EvidenceReport.

    Raises:
        MalformedResponseError: If the summary is blank
    """
    summary = (payload.get("summary") or "").strip()
    if not summary:
        raise MalformedResponseError("Evidence analysis returned an empty summary")

    match_reason = payload.get("matchReason")
    return EvidenceReport(
        summary=summary,
        keyword_evidence=[_parse_keyword(item) for item in payload.get("keywords") or []],
        raw_matched_interests=list(payload.get("matched_user_interests") or []),
        match_reason=match_reason.strip() if isinstance(match_reason, str) and match_reason.strip() else None,
    )


class LlmEvidenceAnalyzer:
    """Summarize a researcher's publications and judge interest coverage with an LLM."""

    def __init__(self, max_publications: int = 200, correlation_id: Optional[str] = None):
        """
        Args:
            max_publications: Publications beyond this count are not sent to the LLM
            correlation_id: Correlation ID for logging
        """
        self.max_publications = max_publications
        self.correlation_id = correlation_id
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="evidence_analysis",
            component="llm_evidence_analyzer",
        )

    async def analyze(
        self, name: str, articles: Sequence[Article], raw_interest_text: str
    ) -> EvidenceReport:
        capped = list(articles)[: self.max_publications]
        self.logger.debug(
            "Analyzing publications",
            researcher=name,
            article_count=len(capped),
            has_interests=bool(raw_interest_text.strip()),
        )

        payload = await llm_helpers.analyze_publication_evidence(
            researcher_name=name,
            articles=capped,
            research_interests=raw_interest_text,
            correlation_id=self.correlation_id,
        )
        return build_evidence_report(payload)


class LlmNameExtractor:
    """Extract researcher names from pasted free text with an LLM."""

    def __init__(self, max_chars: int = 30000, correlation_id: Optional[str] = None):
        self.max_chars = max_chars
        self.correlation_id = correlation_id

    async def extract(self, text: str) -> list[str]:
        if not text.strip():
            return []
        return await llm_helpers.extract_staff_names(
            text, max_chars=self.max_chars, correlation_id=self.correlation_id
        )
