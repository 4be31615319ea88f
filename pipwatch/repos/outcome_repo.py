"""Outcome repository — SQLite access for the signal_outcomes table.

``signal_id`` is unique, so at most one outcome can ever exist per signal.
"""

from dataclasses import asdict
from typing import Optional

from pipwatch.monitor.models import SignalOutcome
from pipwatch.repos.db import get_connection


def _decode(row) -> dict:
    record = dict(row)
    record["hit_target"] = bool(record["hit_target"])
    return record


class OutcomeRepo:
    """Data access layer for signal outcomes.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert(self, outcome: SignalOutcome) -> bool:
        """Insert *outcome* unless one already exists for its signal.

        Returns:
            ``True`` when a row was written, ``False`` when an outcome for
            the signal was already present.
        """
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO signal_outcomes
                    (signal_id, hit_target, exit_price, exit_timestamp,
                     target_hit_level, pnl_pips, notes)
                VALUES (:signal_id, :hit_target, :exit_price, :exit_timestamp,
                        :target_hit_level, :pnl_pips, :notes)
                ON CONFLICT (signal_id) DO NOTHING
                """,
                asdict(outcome),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def exists_by_signal_id(self, signal_id: int) -> bool:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT 1 FROM signal_outcomes WHERE signal_id = ?", (signal_id,)
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def get_by_signal_id(self, signal_id: int) -> Optional[dict]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM signal_outcomes WHERE signal_id = ?", (signal_id,)
            ).fetchone()
            return _decode(row) if row is not None else None
        finally:
            conn.close()

    def list_outcomes(self, limit: int = 20) -> list[dict]:
        """Most recent outcomes first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM signal_outcomes ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
            return [_decode(row) for row in rows]
        finally:
            conn.close()
