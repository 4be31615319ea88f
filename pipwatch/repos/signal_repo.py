"""Signal repository — SQLite CRUD for the signals table."""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from pipwatch.analysis.models import Direction
from pipwatch.monitor.models import MonitoredSignal, SignalStatus, TargetsHit
from pipwatch.repos.db import get_connection
from pipwatch.strategy.models import GeneratedSignal

_JSON_COLUMNS = ("take_profits", "targets_hit", "analysis")
_UPDATABLE = frozenset({"status", "targets_hit"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _decode(row) -> dict:
    record = dict(row)
    for column in _JSON_COLUMNS:
        if record.get(column) is not None:
            record[column] = json.loads(record[column])
    return record


def _encode_value(column: str, value: Any) -> Any:
    if column == "status":
        return SignalStatus(getattr(value, "value", value)).value
    if column == "targets_hit":
        return json.dumps(sorted({int(i) for i in value}))
    return value


def to_monitored(record: dict) -> MonitoredSignal:
    """Build the monitor's view of a decoded signal record."""
    return MonitoredSignal(
        id=record["id"],
        symbol=record["symbol"],
        direction=Direction(record["direction"]),
        entry_price=record["entry_price"],
        stop_loss=record["stop_loss"],
        take_profits=tuple(record["take_profits"]),
        status=SignalStatus(record["status"]),
        targets_hit=TargetsHit.of(record["targets_hit"]),
    )


class SignalRepo:
    """Data access layer for signal records.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def insert(self, signal: GeneratedSignal) -> int:
        """Persist a new ``active`` signal with no targets hit; return its ``id``."""
        now = _now()
        analysis = {
            "confluence": signal.confluence_snapshot,
            "structure": signal.structure_snapshot,
            "pattern": signal.pattern,
        }
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO signals
                    (symbol, direction, entry_price, stop_loss, take_profits,
                     confidence, strategy_tag, entry_timeframe, status,
                     targets_hit, analysis, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', '[]', ?, ?, ?)
                """,
                (
                    signal.symbol,
                    signal.direction.value,
                    signal.entry_price,
                    signal.stop_loss,
                    json.dumps(list(signal.take_profits)),
                    signal.confidence,
                    signal.strategy_tag.value,
                    signal.entry_timeframe,
                    json.dumps(analysis, default=str),
                    now,
                    now,
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def update(self, signal_id: int, patch: dict[str, Any]) -> None:
        """Apply *patch* to one signal and bump ``updated_at``.

        Raises:
            ValueError: If *patch* is empty or names a column that may not
                be updated.
        """
        if not patch:
            raise ValueError("patch must not be empty")
        unknown = set(patch) - _UPDATABLE
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")

        columns = sorted(patch)
        assignments = ", ".join(f"{c} = ?" for c in columns)
        values = [_encode_value(c, patch[c]) for c in columns]

        conn = get_connection(self._db_path)
        try:
            conn.execute(
                f"UPDATE signals SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, _now(), signal_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, signal_id: int) -> Optional[dict]:
        """Return one decoded signal record, or ``None``."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM signals WHERE id = ?", (signal_id,)
            ).fetchone()
            return _decode(row) if row is not None else None
        finally:
            conn.close()

    def query(
        self,
        status: Optional[str] = None,
        symbol: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Return decoded signal records, newest first."""
        conn = get_connection(self._db_path)
        try:
            conditions: list[str] = []
            params: list = []

            if status:
                conditions.append("status = ?")
                params.append(getattr(status, "value", status))
            if symbol:
                conditions.append("symbol = ?")
                params.append(symbol)

            where_clause = ""
            if conditions:
                where_clause = "WHERE " + " AND ".join(conditions)

            sql = f"SELECT * FROM signals {where_clause} ORDER BY id DESC"
            if limit is not None:
                sql += " LIMIT ?"
                params.append(limit)

            return [_decode(row) for row in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def active_signals(self) -> list[MonitoredSignal]:
        """All ``active`` signals as monitor models, oldest first."""
        records = self.query(status=SignalStatus.ACTIVE.value)
        return [to_monitored(r) for r in reversed(records)]

    def expired_without_outcome(self, limit: int = 10) -> list[MonitoredSignal]:
        """``expired`` signals that have no ``signal_outcomes`` row, oldest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                """
                SELECT s.* FROM signals s
                LEFT JOIN signal_outcomes o ON o.signal_id = s.id
                WHERE s.status = ? AND o.signal_id IS NULL
                ORDER BY s.id
                LIMIT ?
                """,
                (SignalStatus.EXPIRED.value, limit),
            ).fetchall()
            return [to_monitored(_decode(row)) for row in rows]
        finally:
            conn.close()
