"""Monitor data models — persisted signal state, outcomes and pass reports."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from pipwatch.analysis.models import Direction


class SignalStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TargetsHit:
    """Sorted, duplicate-free set of 1-based take-profit indexes.

    Never mutated: ``insert_if_absent`` returns a new snapshot.
    """

    indexes: tuple[int, ...] = ()

    @classmethod
    def of(cls, indexes: Iterable[int]) -> "TargetsHit":
        return cls(tuple(sorted({int(i) for i in indexes})))

    def insert_if_absent(self, index: int) -> "TargetsHit":
        if index in self.indexes:
            return self
        return TargetsHit.of(self.indexes + (index,))

    def __contains__(self, index: object) -> bool:
        return index in self.indexes

    def __len__(self) -> int:
        return len(self.indexes)

    def __iter__(self):
        return iter(self.indexes)

    def to_list(self) -> list[int]:
        return list(self.indexes)


@dataclass(frozen=True)
class MonitoredSignal:
    """A persisted signal as the monitor sees it."""

    id: int
    symbol: str
    direction: Direction
    entry_price: float
    stop_loss: float
    take_profits: tuple[float, ...]
    status: SignalStatus = SignalStatus.ACTIVE
    targets_hit: TargetsHit = field(default_factory=TargetsHit)


@dataclass(frozen=True)
class SignalOutcome:
    """The single terminal result of a signal."""

    signal_id: int
    hit_target: bool
    exit_price: float
    exit_timestamp: str
    target_hit_level: Optional[int]
    pnl_pips: int
    notes: str


@dataclass(frozen=True)
class Tick:
    """One request to run a monitoring pass.

    ``prices`` is ``None`` for timer ticks; the consumer fetches a fresh
    snapshot for those.
    """

    source: str  # "timer" or "event"
    prices: Optional[dict[str, float]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PassReport:
    """Counters for one monitoring pass."""

    checked: int = 0
    skipped: int = 0
    targets_recorded: int = 0
    outcomes_created: int = 0
    repaired: int = 0
    errors: int = 0
    source: str = "manual"
    finished_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "skipped": self.skipped,
            "targets_recorded": self.targets_recorded,
            "outcomes_created": self.outcomes_created,
            "repaired": self.repaired,
            "errors": self.errors,
            "source": self.source,
            "finished_at": self.finished_at,
        }
