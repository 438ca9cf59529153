import os
import sqlite3
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    amount INTEGER NOT NULL CHECK (amount >= 0),
    business_name TEXT NOT NULL,
    name TEXT NOT NULL,
    transaction_date TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_person_name ON transactions (name);
CREATE INDEX IF NOT EXISTS idx_transaction_date ON transactions (transaction_date);
"""

COLUMNS = "id, amount, business_name, name, transaction_date"


def _to_record(row: sqlite3.Row) -> Dict[str, Any]:
    record = dict(row)
    record["transaction_date"] = datetime.fromisoformat(record["transaction_date"])
    return record


class TransactionRepository:
    """SQLite-backed storage for transactions.

    A new connection is opened per call so the repository can be shared by
    request handlers running on different threads.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Transaction store ready at {self.db_path}")

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [_to_record(row) for row in rows]
        finally:
            conn.close()

    def find_all(self) -> List[Dict[str, Any]]:
        return self._fetch_all(
            f"SELECT {COLUMNS} FROM transactions ORDER BY transaction_date DESC, id DESC"
        )

    def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        return self._fetch_all(
            f"SELECT {COLUMNS} FROM transactions WHERE name = ? ORDER BY transaction_date DESC, id DESC",
            (name,),
        )

    def find_by_id(self, transaction_id: int) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all(f"SELECT {COLUMNS} FROM transactions WHERE id = ?", (transaction_id,))
        return rows[0] if rows else None

    def count_by_name(self, name: str) -> int:
        conn = self._connect()
        try:
            return conn.execute("SELECT COUNT(1) FROM transactions WHERE name = ?", (name,)).fetchone()[0]
        finally:
            conn.close()

    def exists(self, transaction_id: int) -> bool:
        conn = self._connect()
        try:
            row = conn.execute("SELECT 1 FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
            return row is not None
        finally:
            conn.close()

    def insert(self, amount: int, business_name: str, name: str, transaction_date: datetime) -> Dict[str, Any]:
        conn = self._connect()
        try:
            cur = conn.execute(
                "INSERT INTO transactions (amount, business_name, name, transaction_date) VALUES (?,?,?,?)",
                (amount, business_name, name, transaction_date.isoformat()),
            )
            conn.commit()
            new_id = cur.lastrowid
        finally:
            conn.close()
        return {
            "id": new_id,
            "amount": amount,
            "business_name": business_name,
            "name": name,
            "transaction_date": transaction_date,
        }

    def update(self, transaction_id: int, amount: int, business_name: str, name: str) -> Optional[Dict[str, Any]]:
        conn = self._connect()
        try:
            conn.execute(
                "UPDATE transactions SET amount = ?, business_name = ?, name = ? WHERE id = ?",
                (amount, business_name, name, transaction_id),
            )
            conn.commit()
        finally:
            conn.close()
        return self.find_by_id(transaction_id)

    def delete(self, transaction_id: int) -> bool:
        conn = self._connect()
        try:
            cur = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()
