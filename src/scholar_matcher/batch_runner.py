"""
Concurrent Batch Runner

Runs an async work function over a list of records with a bounded, pull-based
worker pool. Each worker claims the next unclaimed record from a shared
cursor and awaits its work before claiming another, so one slow record never
holds up a fixed partition of the batch.

Example Usage:
    runner = ConcurrentBatchRunner()
    report = await runner.run(records, concurrency=3, work=analyze_record)
    print(report.failed, "failed of", report.total)
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from scholar_matcher.utils.logger import get_logger
from scholar_matcher.utils.progress_tracker import ProgressTracker


T = TypeVar("T")


class BatchFailure(BaseModel):
    """One record whose work raised."""

    record_id: str
    error_kind: str
    error_message: str


class BatchReport(BaseModel):
    """Aggregate result of a batch run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[BatchFailure] = Field(default_factory=list)


def _default_key(record: object) -> str:
    return str(getattr(record, "id", id(record)))


class ConcurrentBatchRunner(Generic[T]):
    """Bounded-width async worker pool over a record list.

    The runner owns the set of record keys currently being worked on
    (``in_flight``); nothing else tracks "what is running".
    """

    def __init__(
        self,
        key: Callable[[T], str] = _default_key,
        progress_tracker: Optional[ProgressTracker] = None,
        correlation_id: Optional[str] = None,
    ):
        """
        Args:
            key: Maps a record to a stable id for in-flight tracking and failure reports
            progress_tracker: Optional rich progress bar advanced once per record
            correlation_id: Correlation ID for logging
        """
        self.key = key
        self.progress_tracker = progress_tracker
        self.in_flight: set[str] = set()
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="batch_analysis",
            component="batch_runner",
        )

    async def run(
        self,
        records: Sequence[T],
        concurrency: int,
        work: Callable[[T], Awaitable[object]],
        description: str = "Analyzing researchers",
    ) -> BatchReport:
        """
        Run ``work`` once for every record with at most ``concurrency`` in flight.

        Args:
            records: Records to process; each is claimed exactly once
            concurrency: Requested pool width, clamped to [1, len(records)]
            work: Async function called per record; exceptions are recorded, not raised
            description: Progress bar label

        Returns:
            BatchReport with success/failure counts
        """
        report = BatchReport(total=len(records))
        if not records:
            return report

        width = max(1, min(concurrency, len(records)))
        cursor = 0

        self.logger.info("Batch started", total_records=len(records), concurrency=width)
        if self.progress_tracker is not None:
            self.progress_tracker.start_phase(description, total_items=len(records))

        async def worker(worker_id: int) -> None:
            nonlocal cursor
            while cursor < len(records):
                # Claim and advance happen with no await in between.
                record = records[cursor]
                cursor += 1

                record_key = self.key(record)
                self.in_flight.add(record_key)
                try:
                    await work(record)
                    report.succeeded += 1
                except Exception as e:
                    report.failed += 1
                    report.failures.append(
                        BatchFailure(
                            record_id=record_key,
                            error_kind=type(e).__name__,
                            error_message=str(e),
                        )
                    )
                    self.logger.error(
                        "Record failed in batch",
                        record_id=record_key,
                        worker_id=worker_id,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                finally:
                    self.in_flight.discard(record_key)
                    if self.progress_tracker is not None:
                        self.progress_tracker.increment()

        await asyncio.gather(*(worker(i) for i in range(width)))

        if self.progress_tracker is not None:
            self.progress_tracker.complete_phase(failed=report.failed)

        self.logger.info(
            "Batch complete",
            total_records=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
        )
        return report
