"""
Shared test fixtures.

In-memory collaborators stand in for SerpAPI and the LLM so no test touches
the network.
"""

import asyncio
from typing import Optional

import pytest

from scholar_matcher.models.analysis import EvidenceReport, KeywordEvidence, SupportingReference
from scholar_matcher.models.publication import Article, AuthorPublications


def make_articles(count: int = 3) -> list[Article]:
    return [
        Article(title=f"Paper {i}", year=str(2020 + i), citation_count=10 * i)
        for i in range(1, count + 1)
    ]


class FakePublicationSource:
    """Returns canned profiles per source id.

    A value may be a list of articles, an exception instance, or a list of
    those consumed one per call (to script flaky behavior).
    """

    def __init__(self, profiles: Optional[dict] = None, delay: float = 0.0):
        self.profiles = dict(profiles or {})
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def fetch(self, source_id: str) -> AuthorPublications:
        self.calls.append(source_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.profiles.get(source_id, make_articles())
            if isinstance(outcome, list) and outcome and not isinstance(outcome[0], Article):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
            if isinstance(outcome, BaseException):
                raise outcome
            return AuthorPublications(source_id=source_id, name="Profile", articles=outcome)
        finally:
            self.active -= 1


class FakeEvidenceAnalyzer:
    """Returns a fixed summary and the configured matched interests per researcher name."""

    def __init__(self, matched: Optional[dict[str, list[str]]] = None, summary: str = "Works on things."):
        self.matched = dict(matched or {})
        self.summary = summary
        self.calls: list[tuple[str, int, str]] = []

    async def analyze(self, name, articles, raw_interest_text) -> EvidenceReport:
        self.calls.append((name, len(articles), raw_interest_text))
        return EvidenceReport(
            summary=self.summary,
            keyword_evidence=[
                KeywordEvidence(
                    keyword="Imaging",
                    reasoning="Several imaging papers",
                    supporting_references=[
                        SupportingReference(title=articles[0].title, year=articles[0].year, citation_count=10)
                    ],
                )
            ],
            raw_matched_interests=self.matched.get(name, []),
            match_reason="Covered the listed interests" if self.matched.get(name) else None,
        )


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def publication_source() -> FakePublicationSource:
    return FakePublicationSource()


@pytest.fixture
def evidence_analyzer() -> FakeEvidenceAnalyzer:
    return FakeEvidenceAnalyzer()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_source():
    """Factory for FakePublicationSource with scripted profiles."""
    return FakePublicationSource


@pytest.fixture
def make_analyzer():
    """Factory for FakeEvidenceAnalyzer with per-name matched interests."""
    return FakeEvidenceAnalyzer


@pytest.fixture
def articles() -> list[Article]:
    return make_articles()
