"""Analysis Pipeline.

Composes the publication source and the evidence analyzer into one
per-researcher operation and applies the match classifier to the result.

Steps:
1. Fetch publications for the record's source id (zero articles is an error)
2. Ask the evidence analyzer for a summary, keyword evidence and matched interests
3. Reduce the matched interests to ones the user actually typed and classify
4. Return the combined AnalysisOutcome

Nothing is written to the record here. The pipeline either returns a full
outcome or raises; retries happen around the whole pipeline (RetryPolicy).
"""

from typing import Optional

from scholar_matcher.agents.collaborators import EvidenceAnalyzer, PublicationSource
from scholar_matcher.errors import EmptyProfileError, InvalidTransitionError, MalformedResponseError
from scholar_matcher.models.analysis import AnalysisOutcome
from scholar_matcher.models.researcher import ResearcherRecord
from scholar_matcher.utils.logger import get_logger
from scholar_matcher.utils.matching import classify, normalize_matched_interests, parse_user_interests


class AnalysisPipeline:
    """Fetch, analyze and classify one researcher."""

    def __init__(
        self,
        publication_source: PublicationSource,
        evidence_analyzer: EvidenceAnalyzer,
        correlation_id: Optional[str] = None,
    ):
        self.publication_source = publication_source
        self.evidence_analyzer = evidence_analyzer
        self.correlation_id = correlation_id

    async def analyze(self, record: ResearcherRecord, interests_text: str) -> AnalysisOutcome:
        """
        Run the full pipeline for one record.

        Args:
            record: Record to analyze (must carry a source id)
            interests_text: Raw user interest text; empty means no classification

        Returns:
            AnalysisOutcome with summary, evidence and (when interests exist) a match verdict

        Raises:
            InvalidTransitionError: If the record has no source id
            EmptyProfileError: If the source returns no publications
            MalformedResponseError: If the analyzer returns an empty summary
            TransportError, RateLimitError: Propagated from collaborators
        """
        logger = get_logger(
            correlation_id=f"{self.correlation_id}-{record.id}" if self.correlation_id else record.id,
            phase="batch_analysis",
            component="analysis_pipeline",
        )

        if not record.source_id:
            raise InvalidTransitionError(
                f"Researcher '{record.name}' has no source id to analyze"
            )

        profile = await self.publication_source.fetch(record.source_id)
        if not profile.articles:
            logger.warning("Empty publication list", researcher=record.name, source_id=record.source_id)
            raise EmptyProfileError(record.source_id)

        report = await self.evidence_analyzer.analyze(record.name, profile.articles, interests_text or "")
        if not report.summary.strip():
            raise MalformedResponseError("Evidence analysis returned an empty summary")

        user_interests = parse_user_interests(interests_text)
        match = None
        if user_interests:
            matched = normalize_matched_interests(user_interests, report.raw_matched_interests)
            match = classify(user_interests, matched)

        logger.info(
            "Analysis pipeline succeeded",
            researcher=record.name,
            article_count=len(profile.articles),
            keyword_count=len(report.keyword_evidence),
            match_type=match.match_type.value if match else None,
        )

        return AnalysisOutcome(
            summary=report.summary.strip(),
            keyword_evidence=report.keyword_evidence,
            match=match,
            match_reason=report.match_reason if match else None,
        )
