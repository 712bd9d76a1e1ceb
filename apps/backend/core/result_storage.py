"""
Result Storage Module
Persists emitted job records.

Supports two backends:
1. JSON Lines file (one record per line, for runs)
2. Memory (for tests and embedding)
"""

import os
import json
import asyncio
import logging
from typing import Any, Dict, List, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_PATH = "storage/dataset.jsonl"


def _as_dict(record: Any) -> Dict[str, Any]:
    if hasattr(record, 'to_dict'):
        return record.to_dict()
    return dict(record)


class ResultStorage:
    """Storage backend for job records"""

    async def push(self, record: Any) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class JsonlResultStorage(ResultStorage):
    """Appends one JSON object per line, UTF-8, non-ASCII preserved."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or DEFAULT_OUTPUT_PATH)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0
        self._lock = asyncio.Lock()
        logger.info(f"Result storage initialized: jsonl at {self.path}")

    async def push(self, record: Any) -> None:
        line = json.dumps(_as_dict(record), ensure_ascii=False)
        async with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
            self.count += 1


class MemoryResultStorage(ResultStorage):
    """Keeps records in memory."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    async def push(self, record: Any) -> None:
        self.records.append(_as_dict(record))

    @property
    def count(self) -> int:
        return len(self.records)


def get_result_storage(kind: Optional[str] = None, path: Optional[str] = None) -> ResultStorage:
    """
    Create a result storage backend.

    Args:
        kind: "jsonl" or "memory" (defaults to RESULT_STORAGE_TYPE or jsonl)
        path: Output file for jsonl (defaults to CRAWLER_OUTPUT)
    """
    kind = (kind or os.getenv("RESULT_STORAGE_TYPE", "jsonl")).lower()
    if kind == "memory":
        return MemoryResultStorage()
    if kind == "jsonl":
        return JsonlResultStorage(path or os.getenv("CRAWLER_OUTPUT", DEFAULT_OUTPUT_PATH))
    raise ValueError(f"Unknown result storage type: {kind}")
