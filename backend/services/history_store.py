"""Append-only question/answer history."""
import logging
import threading
from dataclasses import asdict
from typing import List, Optional

from supabase import create_client, Client

from models.answer import QARecord
from config import SUPABASE_URL, SUPABASE_KEY, STORAGE_BACKEND

logger = logging.getLogger(__name__)


class InMemoryHistoryStore:
    """Keeps QA records in a list for local runs and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[QARecord] = []

    def append(self, record: QARecord) -> None:
        with self._lock:
            self._records.append(record)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def average_response_time_ms(self) -> Optional[float]:
        with self._lock:
            if not self._records:
                return None
            return sum(r.response_time_ms for r in self._records) / len(self._records)

    def records(self) -> List[QARecord]:
        with self._lock:
            return list(self._records)


class SupabaseHistoryStore:
    """Writes QA records to the `qa_history` table in Supabase."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = "qa_history"
    ):
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"SupabaseHistoryStore initialized with table: {table_name}")

    def append(self, record: QARecord) -> None:
        row = asdict(record)
        row["created_at"] = record.created_at.isoformat()
        try:
            self.client.table(self.table_name).insert(row).execute()
        except Exception as e:
            logger.error(f"Error appending QA record: {e}")
            raise

    def count(self) -> int:
        response = self.client.table(self.table_name).select("id", count="exact").execute()
        return response.count if response.count is not None else 0

    def average_response_time_ms(self) -> Optional[float]:
        """Average over the most recent 1000 records."""
        response = (
            self.client.table(self.table_name)
            .select("response_time_ms")
            .order("created_at", desc=True)
            .limit(1000)
            .execute()
        )
        times = [row["response_time_ms"] for row in response.data or [] if row.get("response_time_ms") is not None]
        return sum(times) / len(times) if times else None


def create_history_store(backend: str = STORAGE_BACKEND):
    """Build the history store matching the configured storage backend."""
    backend = backend.lower()
    if backend == "memory":
        return InMemoryHistoryStore()
    if backend == "supabase":
        return SupabaseHistoryStore()
    raise ValueError(f"Invalid STORAGE_BACKEND: {backend}. Must be 'memory' or 'supabase'.")
