"""
On-disk caches for station metadata, download state and observations.

Layout under a provider directory (``<cache>/v2/<source>/``)::

    metadata/<station>.json           StationMetadata
    <station>/downloads.json          DownloadState per data file URL
    <station>/<YYYY>/<MM>/<DD>.json   ObservationRecords for that UTC date
"""

import json
import logging
import os
import stat
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .exceptions import MetadataError
from .models import DownloadState, ObservationRecord, StationMetadata

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any) -> None:
    """
    Write JSON to ``path`` without ever exposing a partially written file.

    The document is written to a temporary file in the same directory and
    then renamed over the target.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates the file 0600
        os.chmod(tmp_name, _file_mode(path))
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _file_mode(path: Path) -> int:
    """Keep an existing file's mode, otherwise apply the process umask."""
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Corrupt cache file {path}: {e}") from e


class MetadataCache:
    """Versioned store of one JSON metadata file per station."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, station_id: str) -> Path:
        return self.directory / f"{station_id}.json"

    def exists(self, station_id: str) -> bool:
        return self.path_for(station_id).exists()

    def load(self, station_id: str) -> StationMetadata:
        path = self.path_for(station_id)
        if not path.exists():
            raise MetadataError(
                f"No cached metadata for station {station_id}; run 'get metadata' first"
            )
        return StationMetadata.from_dict(read_json(path))

    def save(self, metadata: StationMetadata) -> Path:
        path = self.path_for(metadata.id)
        write_json_atomic(path, metadata.to_dict())
        logger.debug(f"Saved metadata for station {metadata.id} to {path}")
        return path


class DownloadStateCache:
    """DownloadState records for one station, keyed by data file URL."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._states: Optional[Dict[str, DownloadState]] = None

    def _load(self) -> Dict[str, DownloadState]:
        if self._states is None:
            if self.path.exists():
                self._states = {
                    url: DownloadState.from_dict(data)
                    for url, data in read_json(self.path).items()
                }
            else:
                self._states = {}
        return self._states

    def get(self, url: str) -> Optional[DownloadState]:
        return self._load().get(url)

    def put(self, state: DownloadState) -> None:
        """Record the new state for ``state.url`` and persist all states."""
        states = self._load()
        states[state.url] = state
        write_json_atomic(
            self.path, {url: s.to_dict() for url, s in sorted(states.items())}
        )


class ObservationStore:
    """
    Append-only observation cache partitioned by UTC calendar date.

    Records already stored are never rewritten; appending a record with the
    same timestamp and property as a stored one is a no-op.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, day: date) -> Path:
        return self.directory / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}.json"

    def _read_day(self, day: date) -> List[ObservationRecord]:
        path = self.path_for(day)
        if not path.exists():
            return []
        return [ObservationRecord.from_dict(d) for d in read_json(path)]

    def append(self, records: Iterable[ObservationRecord]) -> int:
        """Store new records; returns how many were not already cached."""
        by_day: Dict[date, List[ObservationRecord]] = {}
        for record in records:
            by_day.setdefault(record.timestamp.date(), []).append(record)

        added = 0
        for day, day_records in sorted(by_day.items()):
            existing = self._read_day(day)
            seen = {r.key for r in existing}
            new = []
            for record in day_records:
                if record.key not in seen:
                    seen.add(record.key)
                    new.append(record)
            if not new:
                continue

            merged = sorted(existing + new, key=lambda r: r.timestamp)
            write_json_atomic(self.path_for(day), [r.to_dict() for r in merged])
            added += len(new)

        logger.info(f"Cached {added} new observations in {self.directory}")
        return added

    def dates(self) -> List[date]:
        """All dates with cached observations, oldest first."""
        found = []
        if not self.directory.exists():
            return found
        for path in self.directory.glob("[0-9][0-9][0-9][0-9]/[0-9][0-9]/[0-9][0-9].json"):
            year, month = path.parent.parent.name, path.parent.name
            found.append(date(int(year), int(month), int(path.stem)))
        return sorted(found)

    def read(self, start: datetime, end: datetime) -> List[ObservationRecord]:
        """Records with ``start <= timestamp < end``, in timestamp order."""
        records: List[ObservationRecord] = []
        for day in self._days_between(start, end):
            records.extend(
                r for r in self._read_day(day) if start <= r.timestamp < end
            )
        return records

    def latest(self) -> Optional[datetime]:
        """Timestamp of the newest cached observation."""
        for day in reversed(self.dates()):
            records = self._read_day(day)
            if records:
                return max(r.timestamp for r in records)
        return None

    def __iter__(self) -> Iterator[ObservationRecord]:
        for day in self.dates():
            yield from self._read_day(day)

    @staticmethod
    def _days_between(start: datetime, end: datetime) -> Iterator[date]:
        day = start.date()
        last = end.date()
        while day <= last:
            yield day
            day += timedelta(days=1)

    def to_pandas(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Any:
        """Cached observations as a pandas DataFrame (one row per record)."""
        try:
            import pandas as pd
        except ImportError:
            raise ImportError(
                "pandas is required for DataFrame conversion. Install with: pip install pandas"
            ) from None

        if start is not None and end is not None:
            records = self.read(start, end)
        else:
            records = list(self)

        return pd.DataFrame(
            {
                "timestamp": pd.to_datetime([r.timestamp for r in records], utc=True),
                "property": [r.source_property_id for r in records],
                "value": [r.value for r in records],
            }
        )
