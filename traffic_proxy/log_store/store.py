import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel

from traffic_proxy.log_store.models import (
    LOG_ENTRY_KINDS,
    LogEntryKind,
    LogQueryResult,
    LogStreamInfo,
)
from traffic_proxy.utils import parse_timestamp
from traffic_proxy.vars import DEFAULT_QUERY_LIMIT, DEFAULT_QUERY_OFFSET

logger = logging.getLogger("uvicorn.error")

LOG_SUFFIX = ".log"
DEFAULT_STREAM = "proxy"

_UNSAFE_STREAM_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def stream_name(target: Optional[str]) -> str:
    """File name of the stream for ``target``; entries without a target share ``proxy.log``."""
    if not target:
        return DEFAULT_STREAM + LOG_SUFFIX
    return _UNSAFE_STREAM_CHARS.sub("_", target) + LOG_SUFFIX


def serialize(value: Any) -> str:
    """Compact JSON, the form entries are stored in and searched against."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class LogStore:
    """
    Append-only newline delimited JSON log streams, one file per target.

    Each line is ``{kind: record}``. Appends to the same stream are serialized
    with a per-stream lock so concurrent writers never interleave partial lines.
    """

    def __init__(self, log_dir: str):
        if not log_dir:
            raise ValueError("Log directory is required")
        self.log_dir = os.path.abspath(log_dir)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def ensure_dir(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

    def stream_path(self, target: Optional[str] = None) -> str:
        return os.path.join(self.log_dir, stream_name(target))

    def _lock_for(self, path: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    def append(
        self,
        kind: LogEntryKind,
        record: Union[BaseModel, Dict[str, Any]],
        target: Optional[str] = None,
    ) -> None:
        if kind not in LOG_ENTRY_KINDS:
            raise ValueError(f"Unknown log entry kind: {kind}")
        if isinstance(record, BaseModel):
            record = record.model_dump(mode="json")

        line = serialize({kind: record}) + "\n"
        path = self.stream_path(target)
        with self._lock_for(path):
            self.ensure_dir()
            with open(path, "a", encoding="utf-8") as fh:
                fh.write(line)

    def _stream_files(self) -> List[str]:
        try:
            names = os.listdir(self.log_dir)
        except FileNotFoundError:
            return []
        return sorted(n for n in names if n.endswith(LOG_SUFFIX))

    def list_streams(self) -> List[LogStreamInfo]:
        streams = []
        for name in self._stream_files():
            path = os.path.join(self.log_dir, name)
            try:
                stat = os.stat(path)
            except OSError as e:
                logger.warning(f"[LogStore] Cannot stat {path}: {e}")
                continue
            modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            streams.append(
                LogStreamInfo(
                    name=name,
                    size=stat.st_size,
                    modified=modified.isoformat(timespec="milliseconds").replace(
                        "+00:00", "Z"
                    ),
                )
            )
        return streams

    def _candidate_paths(self, target: Optional[str]) -> List[str]:
        if target:
            # Accepts a raw target URL or an already sanitized stream name
            path = self.stream_path(target)
            return [path] if os.path.isfile(path) else []
        return [os.path.join(self.log_dir, name) for name in self._stream_files()]

    def _read_records(self, path: str) -> Iterator[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as fh:
                lines = fh.read().splitlines()
        except OSError as e:
            logger.warning(f"[LogStore] Skipping unreadable log file {path}: {e}")
            return

        for line in lines:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except ValueError:
                continue
            if not isinstance(entry, dict) or not entry:
                continue
            record = next(iter(entry.values()))
            if not isinstance(record, dict):
                continue
            yield record

    def query(
        self,
        target: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = DEFAULT_QUERY_LIMIT,
        offset: Optional[int] = DEFAULT_QUERY_OFFSET,
    ) -> LogQueryResult:
        """
        Collect entries from one stream (``target``) or all streams, keep those
        whose serialized form contains ``search`` (case-insensitive), sort newest
        first and return the ``[offset, offset + limit)`` window with the
        pre-slice total.
        """
        limit = DEFAULT_QUERY_LIMIT if limit is None else max(0, limit)
        offset = DEFAULT_QUERY_OFFSET if offset is None else max(0, offset)
        needle = search.lower() if search else ""

        records = []
        for path in self._candidate_paths(target):
            file_name = os.path.basename(path)
            for record in self._read_records(path):
                if needle and needle not in serialize(record).lower():
                    continue
                records.append({**record, "_file": file_name})

        records.sort(key=lambda r: parse_timestamp(r.get("timestamp")), reverse=True)

        return LogQueryResult(
            entries=records[offset : offset + limit],
            total=len(records),
            offset=offset,
            limit=limit,
        )
