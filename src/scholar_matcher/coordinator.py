"""
Researcher Analysis Coordinator Module

Wires the record store, analysis pipeline, retry policy, batch runner and
session persistence into the operations the CLI exposes: create, link,
submit one, analyze all, retry failed, favorite, delete and clear.
"""

import uuid
from pathlib import Path
from typing import Iterable, Optional

from scholar_matcher.agents.analysis_pipeline import AnalysisPipeline
from scholar_matcher.agents.collaborators import NameExtractor
from scholar_matcher.agents.evidence_analyzer import LlmEvidenceAnalyzer, LlmNameExtractor
from scholar_matcher.agents.publication_source import SerpApiPublicationSource
from scholar_matcher.batch_runner import BatchReport, ConcurrentBatchRunner
from scholar_matcher.errors import AnalysisError, ConfigurationError, InvalidTransitionError
from scholar_matcher.models.config import SystemParams
from scholar_matcher.models.publication import AuthorCandidate
from scholar_matcher.models.researcher import ResearcherRecord
from scholar_matcher.record_store import ResearcherRecordStore
from scholar_matcher.utils.credential_manager import CredentialManager
from scholar_matcher.utils.logger import configure_logging, get_logger
from scholar_matcher.utils.matching import parse_user_interests
from scholar_matcher.utils.progress_tracker import ProgressTracker
from scholar_matcher.utils.rate_limiter import ServiceRateLimiter
from scholar_matcher.utils.retry_policy import RetryPolicy
from scholar_matcher.utils.session_store import SessionStore


class ResearcherAnalysisCoordinator:
    """
    Application-level orchestrator for researcher analysis.

    Every mutating operation persists the session when a SessionStore is
    configured. Batch operations move every eligible record to ANALYZING
    before any worker starts, so an overlapping batch finds nothing to claim.
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        store: Optional[ResearcherRecordStore] = None,
        retry_policy: Optional[RetryPolicy] = None,
        runner: Optional[ConcurrentBatchRunner] = None,
        concurrency: int = 3,
        session_store: Optional[SessionStore] = None,
        name_extractor: Optional[NameExtractor] = None,
        interests_text: str = "",
        correlation_id: Optional[str] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            pipeline: Per-researcher fetch/analyze/classify pipeline
            store: Record store (default: empty store)
            retry_policy: Retry policy wrapped around each pipeline run
            runner: Batch runner for analyze-all and retry-failed
            concurrency: Maximum analyses in flight during a batch
            session_store: Optional persistence; saved after every mutation
            name_extractor: Optional extractor backing extract_and_create
            interests_text: Initial raw interest text
            correlation_id: Correlation ID for logging (auto-generated if None)
        """
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        self.correlation_id = correlation_id
        self.pipeline = pipeline
        self.store = store or ResearcherRecordStore(correlation_id=correlation_id)
        self.retry_policy = retry_policy or RetryPolicy(correlation_id=correlation_id)
        self.runner = runner or ConcurrentBatchRunner(correlation_id=correlation_id)
        self.concurrency = concurrency
        self.session_store = session_store
        self.name_extractor = name_extractor
        self.interests_text = interests_text
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="coordinator",
            component="analysis_coordinator",
        )

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        env_file: Path = Path(".env"),
        interactive: bool = False,
        correlation_id: Optional[str] = None,
    ) -> "ResearcherAnalysisCoordinator":
        """
        Build a coordinator with the shipped collaborators and load saved state.

        The SerpAPI key is resolved on the first SerpAPI request, so local
        record management works without one.

        Raises:
            FileNotFoundError: If an explicit config_path does not exist
        """
        params = SystemParams.load(config_path, allow_missing=config_path is None)
        configure_logging(log_level=params.log_level)
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        credentials = CredentialManager(env_file=env_file, interactive=interactive)
        rate_limiter = ServiceRateLimiter(
            default_rate=params.rate_limits.serpapi_max_requests,
            time_period=params.rate_limits.serpapi_period_seconds,
        )
        source = SerpApiPublicationSource(
            api_key_provider=credentials.serpapi_key,
            timeout=params.timeouts.http_seconds,
            publications_per_request=params.analysis.publications_per_request,
            rate_limiter=rate_limiter,
            correlation_id=correlation_id,
        )
        pipeline = AnalysisPipeline(
            publication_source=source,
            evidence_analyzer=LlmEvidenceAnalyzer(
                max_publications=params.analysis.max_publications,
                correlation_id=correlation_id,
            ),
            correlation_id=correlation_id,
        )

        coordinator = cls(
            pipeline=pipeline,
            retry_policy=RetryPolicy(
                max_retries=params.retry.max_retries,
                base_delay=params.retry.base_delay_seconds,
                correlation_id=correlation_id,
            ),
            runner=ConcurrentBatchRunner(
                progress_tracker=ProgressTracker(),
                correlation_id=correlation_id,
            ),
            concurrency=params.batch_config.analysis_concurrency,
            session_store=SessionStore(state_dir=params.storage.state_dir),
            name_extractor=LlmNameExtractor(
                max_chars=params.analysis.max_extraction_chars,
                correlation_id=correlation_id,
            ),
            correlation_id=correlation_id,
        )
        coordinator.load()

        coordinator.logger.info(
            "Coordinator initialized",
            concurrency=coordinator.concurrency,
            max_retries=params.retry.max_retries,
            state_dir=params.storage.state_dir,
            record_count=len(coordinator.store),
        )
        return coordinator

    # Session ----------------------------------------------------------------

    def load(self) -> None:
        """Replace in-memory state with the saved session, if any."""
        if self.session_store is None:
            return

        records, interests_text = self.session_store.load()
        self.store.replace_all(records)
        self.interests_text = interests_text
        self.logger.info("Session loaded", record_count=len(records))

    def _persist(self) -> None:
        if self.session_store is not None:
            self.session_store.save(self.store.snapshot(), self.interests_text)

    def records(self) -> list[ResearcherRecord]:
        return self.store.snapshot()

    @property
    def user_interests(self) -> list[str]:
        return parse_user_interests(self.interests_text)

    def set_interests(self, interests_text: str) -> list[str]:
        """Store the raw interest text; returns the parsed interests.

        Existing results are not reclassified; re-run analysis to apply new interests.
        """
        self.interests_text = interests_text or ""
        self._persist()
        interests = self.user_interests
        self.logger.info("Interests updated", interest_count=len(interests))
        return interests

    # Record management ------------------------------------------------------

    def create_records(
        self, names: Iterable[str], replace_non_favorites: bool = False
    ) -> list[ResearcherRecord]:
        created = self.store.create_records(names, replace_non_favorites=replace_non_favorites)
        self._persist()
        return created

    def create_record(self, name: str, source_id: Optional[str] = None) -> Optional[ResearcherRecord]:
        """Create one record, PENDING when a source id is given.

        Returns None, creating nothing, when a researcher with that name exists.
        """
        if self.store.find_by_name(name) is not None:
            self.logger.info("Skipping duplicate researcher", researcher=name)
            return None

        record = self.store.create_record(name, source_id=source_id)
        self._persist()
        return record

    async def extract_and_create(self, text: str) -> list[ResearcherRecord]:
        """
        Extract researcher names from free text (e.g. a pasted staff page) and
        create records for them. Non-favorite records are replaced.

        Raises:
            ConfigurationError: If no name extractor is configured
            AnalysisError: If extraction fails
        """
        if self.name_extractor is None:
            raise ConfigurationError("No name extractor configured")

        names = await self.name_extractor.extract(text)
        self.logger.info("Names extracted", name_count=len(names))
        return self.create_records(names, replace_non_favorites=True)

    def link_source_id(self, record_id: str, source_id: str) -> ResearcherRecord:
        record = self.store.link_source_id(record_id, source_id)
        self._persist()
        return record

    def unlink_source_id(self, record_id: str) -> ResearcherRecord:
        record = self.store.unlink_source_id(record_id)
        self._persist()
        return record

    def toggle_favorite(self, record_id: str) -> ResearcherRecord:
        record = self.store.toggle_favorite(record_id)
        self._persist()
        return record

    def delete(self, record_id: str) -> ResearcherRecord:
        record = self.store.delete(record_id)
        self._persist()
        return record

    def clear_non_favorites(self) -> int:
        removed = self.store.clear_non_favorites()
        self._persist()
        return removed

    async def find_source_id_candidates(
        self, name: str, university: Optional[str] = None
    ) -> list[AuthorCandidate]:
        """Look up Google Scholar profiles that may belong to a researcher."""
        search = getattr(self.pipeline.publication_source, "search_author_candidates", None)
        if search is None:
            raise ConfigurationError("The configured publication source does not support author search")
        return await search(name, university)

    # Analysis ---------------------------------------------------------------

    async def _analyze_claimed(self, record: ResearcherRecord, interests_text: str) -> None:
        """Run the pipeline under the retry policy and commit the outcome.

        The record must already be ANALYZING. Failures are written to the
        record and re-raised so the batch runner can count them.
        """
        logger = self.logger.bind(record_id=record.id, researcher=record.name)

        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            logger.info("Analysis attempt failed, backing off", attempt=attempt, delay=delay)

        try:
            outcome = await self.retry_policy.run(
                lambda: self.pipeline.analyze(record, interests_text),
                on_retry=on_retry,
            )
            committed = self.store.complete(record.id, outcome)
        except Exception as e:
            self.store.fail(record.id, e)
            self._persist()
            logger.error("Analysis failed", error_type=type(e).__name__, error=str(e))
            raise

        if committed is None:
            return
        self._persist()
        logger.info(
            "Analysis completed",
            match_type=outcome.match.match_type.value if outcome.match else None,
        )

    async def submit(self, record_id: str) -> Optional[ResearcherRecord]:
        """
        Analyze one record.

        Analysis failures leave the record in ERROR and are not raised.
        Submitting a record that is already ANALYZING changes nothing.

        Returns:
            The record after the attempt, or None if it was deleted meanwhile

        Raises:
            RecordNotFoundError: If the id is unknown
            InvalidTransitionError: If the record has no source id
        """
        claimed = self.store.begin_analysis(record_id)
        if claimed is None:
            return self.store.get(record_id)
        self._persist()

        try:
            await self._analyze_claimed(claimed, self.interests_text)
        except AnalysisError:
            pass

        return self.store.get(record_id) if record_id in self.store else None

    def _claim(self, candidates: list[ResearcherRecord]) -> list[ResearcherRecord]:
        claimed = []
        for record in candidates:
            try:
                began = self.store.begin_analysis(record.id)
            except InvalidTransitionError:
                began = None
            if began is not None:
                claimed.append(began)
        self._persist()
        return claimed

    async def _run_batch(self, candidates: list[ResearcherRecord], description: str) -> BatchReport:
        claimed = self._claim(candidates)
        interests_text = self.interests_text

        async def work(record: ResearcherRecord) -> None:
            await self._analyze_claimed(record, interests_text)

        report = await self.runner.run(claimed, self.concurrency, work, description=description)
        report.skipped = len(candidates) - len(claimed)
        return report

    async def analyze_all(self) -> BatchReport:
        """Analyze every record with a source id that is not COMPLETED or ANALYZING."""
        candidates = self.store.eligible_for_analysis()
        self.logger.info("Analyze all requested", eligible=len(candidates))
        return await self._run_batch(candidates, "Analyzing researchers")

    async def retry_failed(self) -> BatchReport:
        """Re-analyze every ERROR record that has a source id."""
        candidates = self.store.failed_with_source_id()
        self.logger.info("Retry failed requested", eligible=len(candidates))
        return await self._run_batch(candidates, "Retrying failed researchers")
