"""File-backed checkpoint store for resumable imports.

Checkpoints are write-once JSON files named
``checkpoint_<type>_<timestamp>.json``. The newest file for a type is the one
a resumed run starts from; older files are only ever removed by pruning.
"""

import asyncio
import os
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pydantic
import structlog

from bulk_import.exceptions import CheckpointError, ConfigError
from bulk_import.imports.models import ImportType
from bulk_import.recovery.schemas import Checkpoint, CheckpointSummary

logger = structlog.get_logger()

# Fixed width so lexicographic order equals chronological order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*(h|hours?|d|days?|w|weeks?)\s*$", re.IGNORECASE)

_DURATION_UNITS = {
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def parse_max_age(max_age: str | timedelta) -> timedelta:
    """Parse a retention window such as ``7d``, ``1w`` or ``7 days``."""
    if isinstance(max_age, timedelta):
        if max_age < timedelta(0):
            raise ConfigError(f"Invalid max age: {max_age} is negative")
        return max_age

    match = _DURATION_PATTERN.match(max_age or "")
    if match is None:
        raise ConfigError(
            f"Invalid max age '{max_age}'. Use a format such as 7d, 1w, 12h or '7 days'"
        )
    value, unit = match.groups()
    return int(value) * _DURATION_UNITS[unit[0].lower()]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _write_atomic(path: Path, payload: str) -> None:
    """Write to a temp file, fsync, then rename over the final name."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    temp_path.unlink(missing_ok=True)
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


class CheckpointStore:
    def __init__(
        self,
        directory: str | Path,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._dir = Path(directory)
        self._clock = clock
        self._last_timestamps: dict[str, datetime] = {}

    @property
    def directory(self) -> Path:
        return self._dir

    def checkpoint_id(self, import_type: str, timestamp: str) -> str:
        return f"checkpoint_{import_type}_{timestamp}"

    def _path_for(self, checkpoint_id: str) -> Path:
        return self._dir / f"{checkpoint_id}.json"

    async def _next_timestamp(self, import_type: str) -> datetime:
        now = self._clock()
        last = self._last_timestamps.get(import_type)
        if last is not None and now <= last:
            now = last + timedelta(microseconds=1)
        # Claimed before each await so concurrent saves never share a timestamp.
        self._last_timestamps[import_type] = now
        while await asyncio.to_thread(
            self._path_for(self.checkpoint_id(import_type, now.strftime(TIMESTAMP_FORMAT))).exists
        ):
            now = max(now, self._last_timestamps[import_type]) + timedelta(microseconds=1)
            self._last_timestamps[import_type] = now
        return now

    def _list_files(self, import_type: str) -> list[Path]:
        """Checkpoint files for ``import_type``, oldest first; unparseable names are skipped."""
        if not self._dir.exists():
            return []
        dated = []
        for path in self._dir.glob(f"checkpoint_{import_type}_*.json"):
            created = self._parse_timestamp(import_type, path)
            if created is None:
                logger.warning("checkpoint_name_unrecognized", file=path.name)
                continue
            dated.append((created, path))
        return [path for _, path in sorted(dated)]

    def _parse_timestamp(self, import_type: str, path: Path) -> datetime | None:
        raw = path.stem.removeprefix(f"checkpoint_{import_type}_")
        try:
            return datetime.strptime(raw, TIMESTAMP_FORMAT).replace(tzinfo=UTC)
        except ValueError:
            return None

    async def save(
        self,
        import_type: ImportType,
        records: Sequence[Any],
        progress: int,
        *,
        offset: int = 0,
    ) -> str:
        """Persist a checkpoint and return its id.

        ``records`` is the untouched sequence of the current run and ``offset``
        the absolute index of its first element in the original sequence, so
        the stored ``remainingData`` is always an exact suffix of the original.
        """
        total = offset + len(records)
        if not offset <= progress <= total:
            raise ValueError(f"progress {progress} outside [{offset}, {total}]")

        timestamp = (await self._next_timestamp(import_type)).strftime(TIMESTAMP_FORMAT)
        checkpoint_id = self.checkpoint_id(import_type, timestamp)

        try:
            checkpoint = Checkpoint(
                timestamp=timestamp,
                type=import_type,
                progress=progress,
                remaining_data=list(records[progress - offset :]),
                processed_count=progress,
                total_count=total,
            )
            payload = checkpoint.model_dump_json(by_alias=True, indent=2)
            await asyncio.to_thread(_write_atomic, self._path_for(checkpoint_id), payload)
        except (OSError, ValueError) as exc:
            logger.error("checkpoint_save_failed", type=import_type, error=str(exc))
            raise CheckpointError(f"Failed to save checkpoint {checkpoint_id}: {exc}") from exc

        logger.info(
            "checkpoint_saved",
            type=import_type,
            progress=progress,
            total=total,
            checkpoint=checkpoint_id,
        )
        return checkpoint_id

    async def load_latest(self, import_type: ImportType) -> Checkpoint | None:
        try:
            files = await asyncio.to_thread(self._list_files, import_type)
            if not files:
                return None
            latest = files[-1]
            content = await asyncio.to_thread(latest.read_text, encoding="utf-8")
        except OSError as exc:
            logger.error("checkpoint_load_failed", type=import_type, error=str(exc))
            raise CheckpointError(f"Failed to read checkpoints for '{import_type}': {exc}") from exc

        try:
            checkpoint = Checkpoint.model_validate_json(content)
        except pydantic.ValidationError as exc:
            logger.error("checkpoint_corrupt", checkpoint=latest.stem, error=str(exc))
            raise CheckpointError(f"Checkpoint {latest.stem} is corrupt: {exc}") from exc

        if checkpoint.type != import_type:
            raise CheckpointError(
                f"Checkpoint {latest.stem} belongs to '{checkpoint.type}', not '{import_type}'"
            )

        logger.info(
            "checkpoint_loaded",
            checkpoint=latest.stem,
            processed=checkpoint.processed_count,
            total=checkpoint.total_count,
        )
        return checkpoint

    async def list_checkpoints(self, import_type: ImportType) -> list[CheckpointSummary]:
        try:
            files = await asyncio.to_thread(self._list_files, import_type)
        except OSError as exc:
            raise CheckpointError(f"Failed to list checkpoints for '{import_type}': {exc}") from exc

        summaries: list[CheckpointSummary] = []
        for path in files:
            try:
                content = await asyncio.to_thread(path.read_text, encoding="utf-8")
                checkpoint = Checkpoint.model_validate_json(content)
            except (OSError, pydantic.ValidationError) as exc:
                logger.warning("checkpoint_unreadable", checkpoint=path.stem, error=str(exc))
                continue
            summaries.append(
                CheckpointSummary(
                    checkpoint_id=path.stem,
                    type=checkpoint.type,
                    timestamp=checkpoint.timestamp,
                    processed_count=checkpoint.processed_count,
                    total_count=checkpoint.total_count,
                    remaining_count=len(checkpoint.remaining_data),
                )
            )
        return summaries

    async def prune_older_than(
        self, import_type: ImportType, max_age: str | timedelta
    ) -> list[str]:
        """Delete checkpoints older than ``max_age``. Best effort: IO errors are logged."""
        age = parse_max_age(max_age)
        cutoff = self._clock() - age

        try:
            files = await asyncio.to_thread(self._list_files, import_type)
        except OSError as exc:
            logger.error("checkpoint_prune_failed", type=import_type, error=str(exc))
            return []

        removed: list[str] = []
        for path in files:
            if self._parse_timestamp(import_type, path) >= cutoff:
                continue
            try:
                await asyncio.to_thread(path.unlink, missing_ok=True)
            except OSError as exc:
                logger.error("checkpoint_remove_failed", checkpoint=path.stem, error=str(exc))
                continue
            removed.append(path.stem)
            logger.info("checkpoint_removed", checkpoint=path.stem)

        return removed
