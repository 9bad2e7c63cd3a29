"""Collaborator contracts consumed by the analysis pipeline and the coordinator.

Any object with matching async methods can stand in for the shipped
implementations (SerpAPI publication source, LLM evidence analyzer, LLM name
extractor), which is how the tests drive the pipeline without a network.
"""

from typing import Protocol, Sequence

from scholar_matcher.models.analysis import EvidenceReport
from scholar_matcher.models.publication import Article, AuthorPublications


class PublicationSource(Protocol):
    """Fetches the publication list behind an external profile id."""

    async def fetch(self, source_id: str) -> AuthorPublications:
        ...


class EvidenceAnalyzer(Protocol):
    """Summarizes publications and judges which user interests they address."""

    async def analyze(
        self, name: str, articles: Sequence[Article], raw_interest_text: str
    ) -> EvidenceReport:
        ...


class NameExtractor(Protocol):
    """Pulls researcher names out of free text."""

    async def extract(self, text: str) -> list[str]:
        ...
