"""
Outcome types of a synchronization run
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from core.constants.exceptions import SyncException


class SyncState(Enum):
    """Synchronization stream state"""

    IDLE = "idle"  # Constructed, not started
    PULLING = "pulling"  # Reading the source and processing records
    DRAINING = "draining"  # Source finished, waiting for in-flight records
    CLOSED = "closed"  # Close emitted, terminal


class OutcomeKind(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class SyncOutcome:
    """
    Outcome of one record

    Exactly one outcome is produced for every record pulled from the source.
    `document` is set for successes, `error` for failures.
    """

    kind: OutcomeKind
    record_id: Optional[str]
    document: Any = None
    error: Optional[SyncException] = None

    @classmethod
    def success(cls, record_id: Optional[str], document: Any) -> 'SyncOutcome':
        return cls(kind=OutcomeKind.SUCCESS, record_id=record_id, document=document)

    @classmethod
    def failure(
        cls, record_id: Optional[str], error: SyncException
    ) -> 'SyncOutcome':
        return cls(kind=OutcomeKind.FAILURE, record_id=record_id, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


@dataclass
class SyncSummary:
    """
    Counters of a synchronization run

    Invariant once closed: succeeded + failed == pulled.
    `persisted` counts successful write-backs, `fatal_error` is set when the
    source failed and the run stopped early, `peak_in_flight` is the highest
    number of records processed at the same time.
    """

    pulled: int = 0
    succeeded: int = 0
    failed: int = 0
    persisted: int = 0
    peak_in_flight: int = 0
    cancelled: bool = False
    fatal_error: Optional[SyncException] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        """Whether the source was read to the end"""
        return not self.cancelled and self.fatal_error is None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
