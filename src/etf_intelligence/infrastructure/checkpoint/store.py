"""Ingestion checkpoint storage: local JSON file or S3-compatible object.

Provides atomic JSON read/write helpers plus existence/delete operations.
Document layout:

    {"processed": [...], "failed": [...], "apiCallsUsed": 0,
     "stats": {...}, "timestamp": "2024-06-03T10:00:00+00:00"}
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from etf_intelligence.infrastructure.observability import get_infrastructure_logger

log = get_infrastructure_logger("checkpoint-store")


class CheckpointError(Exception):
    """Checkpoint could not be read or written."""


@dataclass
class IngestionCheckpoint:
    """Durable progress of a universe sync."""

    processed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    api_calls_used: int = 0
    stats: dict[str, int] = field(default_factory=dict)
    timestamp: str = ""

    @property
    def processed_set(self) -> set[str]:
        return set(self.processed)

    @property
    def written_at(self) -> datetime | None:
        if not self.timestamp:
            return None
        try:
            parsed = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": list(self.processed),
            "failed": list(self.failed),
            "apiCallsUsed": self.api_calls_used,
            "stats": dict(self.stats),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> IngestionCheckpoint:
        return cls(
            processed=[str(t) for t in raw.get("processed", []) or []],
            failed=[str(t) for t in raw.get("failed", []) or []],
            api_calls_used=int(raw.get("apiCallsUsed", 0) or 0),
            stats={k: int(v) for k, v in (raw.get("stats") or {}).items()},
            timestamp=raw.get("timestamp", "") or "",
        )


class CheckpointStore:
    """Checkpoint store writing to a local file or an S3 bucket.

    Local writes go through a temp file in the same directory followed by
    os.replace, so a crash mid-write leaves the previous checkpoint intact.
    """

    def __init__(
        self,
        path: str | None = None,
        bucket: str | None = None,
        key: str = "checkpoints/etf-sync-progress.json",
        endpoint: str | None = None,
        s3_client: Any = None,
        region: str = "us-east-1",
    ) -> None:
        if not path and not bucket:
            raise ValueError("CheckpointStore needs a local path or an S3 bucket")

        self.path = Path(path) if path else None
        self.bucket = bucket
        self.key = key
        self.s3 = None
        if self.path is None:
            self.s3 = s3_client or boto3.client(
                "s3",
                endpoint_url=endpoint or os.getenv("S3_ENDPOINT_URL"),
                region_name=region,
            )

    @property
    def location(self) -> str:
        if self.path is not None:
            return str(self.path)
        return f"s3://{self.bucket}/{self.key}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def exists(self) -> bool:
        if self.path is not None:
            return self.path.exists()
        try:
            self.s3.head_object(Bucket=self.bucket, Key=self.key)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in {"404", "NotFound", "NoSuchKey"}:
                return False
            raise

    def load(self) -> IngestionCheckpoint | None:
        """Read the checkpoint. Returns None when absent.

        Raises:
            CheckpointError: The document exists but is not valid JSON.
        """
        raw = self._read_bytes()
        if raw is None:
            return None
        try:
            document = json.loads(raw.decode("utf-8"))
            if not isinstance(document, dict):
                raise ValueError("checkpoint root is not an object")
            checkpoint = IngestionCheckpoint.from_dict(document)
        except (ValueError, TypeError, AttributeError) as e:
            raise CheckpointError(f"Corrupt checkpoint at {self.location}: {e}") from e

        log.info(
            "checkpoint_loaded",
            location=self.location,
            processed=len(checkpoint.processed),
            failed=len(checkpoint.failed),
            api_calls_used=checkpoint.api_calls_used,
        )
        return checkpoint

    def save(self, checkpoint: IngestionCheckpoint) -> None:
        """Stamp and atomically persist the checkpoint."""
        checkpoint.timestamp = datetime.now(timezone.utc).isoformat()
        payload = json.dumps(checkpoint.to_dict(), ensure_ascii=True, indent=2).encode(
            "utf-8"
        )

        if self.path is not None:
            self._write_local_atomic(payload)
        else:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=self.key,
                Body=payload,
                ContentType="application/json",
            )

        log.debug(
            "checkpoint_saved",
            location=self.location,
            processed=len(checkpoint.processed),
            api_calls_used=checkpoint.api_calls_used,
        )

    def delete(self) -> None:
        if self.path is not None:
            self.path.unlink(missing_ok=True)
        else:
            self.s3.delete_object(Bucket=self.bucket, Key=self.key)
        log.info("checkpoint_deleted", location=self.location)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _read_bytes(self) -> bytes | None:
        if self.path is not None:
            if not self.path.exists():
                return None
            return self.path.read_bytes()

        try:
            resp = self.s3.get_object(Bucket=self.bucket, Key=self.key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in {"404", "NotFound", "NoSuchKey"}:
                return None
            raise
        return resp["Body"].read()

    def _write_local_atomic(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
