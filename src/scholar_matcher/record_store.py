"""
Researcher Record Store

Owns every researcher record and is the only place their status changes.

State machine:

    AWAITING_SOURCE_ID --link--> PENDING --begin--> ANALYZING --complete--> COMPLETED
                                    ^                   |  \\--fail------> ERROR
                                    |                   |
        (link from any state but ANALYZING)    COMPLETED / ERROR --begin--> ANALYZING
    any state --unlink--> AWAITING_SOURCE_ID

Records are frozen pydantic models. Every transition builds a new validated
record and swaps it into the store in one synchronous step, so concurrent
readers on the event loop always see whole records.
"""

import uuid
from typing import Iterable, Optional

from scholar_matcher.errors import InvalidTransitionError, RecordNotFoundError
from scholar_matcher.models.analysis import AnalysisOutcome
from scholar_matcher.models.researcher import ResearcherRecord, ResearcherStatus
from scholar_matcher.utils.logger import get_logger

ANALYSIS_RESET = {
    "summary": None,
    "keyword_evidence": [],
    "match": None,
    "match_reason": None,
    "error_message": None,
    "error_kind": None,
}
SUBMITTABLE = {ResearcherStatus.PENDING, ResearcherStatus.ERROR, ResearcherStatus.COMPLETED}


def normalize_display_name(name: str) -> str:
    """Collapse whitespace and title-case names typed entirely in one case.

    Example:
        >>> normalize_display_name("  JANE   SMITH ")
        'Jane Smith'
        >>> normalize_display_name("Yann LeCun")
        'Yann LeCun'
    """
    collapsed = " ".join(name.split())
    if collapsed.isupper() or collapsed.islower():
        return collapsed.title()
    return collapsed


def _replace(record: ResearcherRecord, **changes) -> ResearcherRecord:
    """Build a validated copy of a record with the given fields changed."""
    return ResearcherRecord(**{**record.model_dump(), **changes})


class ResearcherRecordStore:
    """In-memory, insertion-ordered store of researcher records."""

    def __init__(
        self,
        records: Iterable[ResearcherRecord] = (),
        correlation_id: Optional[str] = None,
    ):
        self._records: dict[str, ResearcherRecord] = {}
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="record_store",
            component="researcher_record_store",
        )
        self.replace_all(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get(self, record_id: str) -> ResearcherRecord:
        """Return the current record for an id.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    def snapshot(self) -> list[ResearcherRecord]:
        """All records in creation order."""
        return list(self._records.values())

    def _put(self, record: ResearcherRecord, previous: Optional[ResearcherRecord] = None) -> ResearcherRecord:
        self._records[record.id] = record
        if previous is not None and previous.status != record.status:
            self.logger.debug(
                "Status transition",
                record_id=record.id,
                researcher=record.name,
                from_status=previous.status.value,
                to_status=record.status.value,
            )
        return record

    def replace_all(self, records: Iterable[ResearcherRecord]) -> None:
        """Replace the store's contents, e.g. with records loaded from disk.

        Records saved mid-analysis are restored as PENDING; no analysis run
        survives a restart.
        """
        self._records = {}
        for record in records:
            if record.status == ResearcherStatus.ANALYZING:
                record = _replace(record, status=ResearcherStatus.PENDING)
            self._records[record.id] = record

    # Creation ---------------------------------------------------------------

    def create_record(self, name: str, source_id: Optional[str] = None) -> ResearcherRecord:
        """Create one record; PENDING when a source id is given, else AWAITING_SOURCE_ID."""
        source_id = source_id.strip() if source_id else None
        record = ResearcherRecord(
            id=uuid.uuid4().hex,
            name=normalize_display_name(name),
            status=ResearcherStatus.PENDING if source_id else ResearcherStatus.AWAITING_SOURCE_ID,
            source_id=source_id,
        )
        self.logger.debug("Record created", record_id=record.id, researcher=record.name)
        return self._put(record)

    def find_by_name(self, name: str) -> Optional[ResearcherRecord]:
        """Return the record whose display name matches, ignoring case and spacing."""
        key = normalize_display_name(name).lower()
        for record in self._records.values():
            if record.name.lower() == key:
                return record
        return None

    def create_records(
        self, names: Iterable[str], replace_non_favorites: bool = False
    ) -> list[ResearcherRecord]:
        """
        Create AWAITING_SOURCE_ID records from a list of names.

        Blank names are skipped, and so are names (case-insensitive) that
        already exist in the store or appear earlier in the list.

        Args:
            names: Researcher names
            replace_non_favorites: Clear non-favorite records first, as a fresh
                extraction does

        Returns:
            The newly created records, in input order
        """
        if replace_non_favorites:
            self.clear_non_favorites()

        existing = {record.name.lower() for record in self._records.values()}
        created: list[ResearcherRecord] = []
        for raw_name in names:
            if not raw_name or not raw_name.strip():
                continue
            name = normalize_display_name(raw_name)
            if name.lower() in existing:
                self.logger.debug("Skipping duplicate researcher", researcher=name)
                continue
            existing.add(name.lower())
            created.append(self.create_record(name))

        self.logger.info("Records created", created=len(created), total=len(self._records))
        return created

    # Source id linking ------------------------------------------------------

    def link_source_id(self, record_id: str, source_id: str) -> ResearcherRecord:
        """
        Attach a source id and move the record to PENDING, discarding old results.

        Raises:
            ValueError: If the source id is blank
            InvalidTransitionError: If the record is being analyzed
        """
        source_id = (source_id or "").strip()
        if not source_id:
            raise ValueError("source_id must not be empty")

        record = self.get(record_id)
        if record.status == ResearcherStatus.ANALYZING:
            raise InvalidTransitionError(
                f"Cannot link a new source id while '{record.name}' is being analyzed"
            )

        updated = _replace(record, status=ResearcherStatus.PENDING, source_id=source_id, **ANALYSIS_RESET)
        return self._put(updated, record)

    def unlink_source_id(self, record_id: str) -> ResearcherRecord:
        """Drop the source id and all analysis fields; back to AWAITING_SOURCE_ID."""
        record = self.get(record_id)
        updated = _replace(
            record, status=ResearcherStatus.AWAITING_SOURCE_ID, source_id=None, **ANALYSIS_RESET
        )
        return self._put(updated, record)

    # Analysis lifecycle -----------------------------------------------------

    def begin_analysis(self, record_id: str) -> Optional[ResearcherRecord]:
        """
        Move a record into ANALYZING.

        Returns:
            The ANALYZING record, or None if the record is already being analyzed

        Raises:
            InvalidTransitionError: If the record has no source id
        """
        record = self.get(record_id)
        if record.status == ResearcherStatus.ANALYZING:
            self.logger.info("Duplicate submission ignored", record_id=record_id, researcher=record.name)
            return None

        if record.status not in SUBMITTABLE or not record.source_id:
            raise InvalidTransitionError(
                f"'{record.name}' needs a linked source id before analysis"
            )

        updated = _replace(record, status=ResearcherStatus.ANALYZING, **ANALYSIS_RESET)
        return self._put(updated, record)

    def _in_flight(self, record_id: str, action: str) -> Optional[ResearcherRecord]:
        record = self._records.get(record_id)
        if record is None or record.status != ResearcherStatus.ANALYZING:
            self.logger.warning(
                "Discarding stale analysis result",
                record_id=record_id,
                action=action,
                status=record.status.value if record else "deleted",
            )
            return None
        return record

    def complete(self, record_id: str, outcome: AnalysisOutcome) -> Optional[ResearcherRecord]:
        """ANALYZING -> COMPLETED with every result field written at once.

        Returns None (and changes nothing) when the record is no longer ANALYZING.
        """
        record = self._in_flight(record_id, "complete")
        if record is None:
            return None

        updated = _replace(
            record,
            status=ResearcherStatus.COMPLETED,
            summary=outcome.summary,
            keyword_evidence=outcome.keyword_evidence,
            match=outcome.match,
            match_reason=outcome.match_reason,
            error_message=None,
            error_kind=None,
        )
        return self._put(updated, record)

    def fail(self, record_id: str, error: BaseException | str) -> Optional[ResearcherRecord]:
        """ANALYZING -> ERROR with a human-readable message.

        Returns None (and changes nothing) when the record is no longer ANALYZING.
        """
        record = self._in_flight(record_id, "fail")
        if record is None:
            return None

        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            kind: Optional[str] = type(error).__name__
        else:
            message = error or "Analysis failed"
            kind = None

        updated = _replace(
            record, status=ResearcherStatus.ERROR, **{**ANALYSIS_RESET, "error_message": message, "error_kind": kind}
        )
        return self._put(updated, record)

    # User actions -----------------------------------------------------------

    def toggle_favorite(self, record_id: str) -> ResearcherRecord:
        record = self.get(record_id)
        return self._put(_replace(record, is_favorite=not record.is_favorite))

    def delete(self, record_id: str) -> ResearcherRecord:
        """Remove a record. A result still in flight for it will be discarded."""
        record = self.get(record_id)
        del self._records[record_id]
        self.logger.info("Record deleted", record_id=record_id, researcher=record.name)
        return record

    def clear_non_favorites(self) -> int:
        """Remove every record that is neither a favorite nor being analyzed.

        Returns:
            Number of records removed
        """
        kept = {
            record_id: record
            for record_id, record in self._records.items()
            if record.is_favorite or record.status == ResearcherStatus.ANALYZING
        }
        removed = len(self._records) - len(kept)
        self._records = kept
        self.logger.info("Cleared non-favorite records", removed=removed, kept=len(kept))
        return removed

    # Selections -------------------------------------------------------------

    def eligible_for_analysis(self) -> list[ResearcherRecord]:
        """Records with a source id that are neither COMPLETED nor ANALYZING."""
        return [
            record
            for record in self._records.values()
            if record.source_id
            and record.status not in (ResearcherStatus.COMPLETED, ResearcherStatus.ANALYZING)
        ]

    def failed_with_source_id(self) -> list[ResearcherRecord]:
        """ERROR records that can be retried (favorites included)."""
        return [
            record
            for record in self._records.values()
            if record.status == ResearcherStatus.ERROR and record.source_id
        ]
