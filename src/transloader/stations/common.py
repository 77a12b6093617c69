"""
Helpers shared by the station variants.

Stations compose a :class:`StationContext` rather than inheriting from a
common base class; the row-oriented sources also share
:func:`download_rows`.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .. import download
from ..cache import DownloadStateCache, MetadataCache, ObservationStore
from ..exceptions import MetadataError
from ..http import HTTPClient
from ..models import (
    DatastreamDef,
    DownloadState,
    ObservationRecord,
    PropertyFilter,
    StationMetadata,
)
from ..ontology import Ontology
from ..sensorthings import EntitySynchronizer, ObservationUploader
from ..timeutil import Interval, parse_interval, parse_offset

logger = logging.getLogger(__name__)


@dataclass
class StationContext:
    """Collaborators owned by one station for the duration of a run."""

    station_id: str
    http: HTTPClient
    ontology: Ontology
    metadata_cache: MetadataCache
    observation_store: ObservationStore
    download_states: DownloadStateCache

    @classmethod
    def create(
        cls,
        station_id: str,
        provider_path: Path,
        http: HTTPClient,
        ontology: Ontology,
        metadata_cache: MetadataCache,
    ) -> "StationContext":
        station_path = Path(provider_path) / station_id
        return cls(
            station_id=station_id,
            http=http,
            ontology=ontology,
            metadata_cache=metadata_cache,
            observation_store=ObservationStore(station_path),
            download_states=DownloadStateCache(station_path / "downloads.json"),
        )

    def refresh(
        self, downloaded: StationMetadata, current: StationMetadata
    ) -> StationMetadata:
        """
        Merge freshly downloaded metadata with what is already known.

        Links and hand-entered fields come from ``current`` when it holds
        anything, otherwise from the metadata cache.
        """
        if not current.is_empty or current.remote_thing_link:
            downloaded.carry_forward(current)
        elif self.metadata_cache.exists(self.station_id):
            downloaded.carry_forward(self.metadata_cache.load(self.station_id))
        return downloaded

    def save_metadata(self, metadata: StationMetadata) -> Path:
        if metadata.is_empty:
            raise MetadataError(
                f"Station {metadata.id} has no metadata to save; download it first"
            )
        return self.metadata_cache.save(metadata)

    def upload_metadata(
        self,
        metadata: StationMetadata,
        destination: str,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> StationMetadata:
        property_filter = PropertyFilter.from_lists(allowed, blocked)
        synchronizer = EntitySynchronizer(
            self.http, self.ontology, save=self.metadata_cache.save
        )
        return synchronizer.synchronize(metadata, destination, property_filter)

    def upload_observations(
        self,
        metadata: StationMetadata,
        destination: str,
        interval: Union[str, Interval],
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> int:
        # Validate every input before reading the cache or touching the network
        property_filter = PropertyFilter.from_lists(allowed, blocked)
        if isinstance(interval, Interval):
            window = interval
        else:
            # Scanning the store for the newest record is only needed for "latest"
            latest = None
            if interval.strip().lower() == "latest":
                latest = self.observation_store.latest()
            window = parse_interval(interval, latest=latest)
        uploader = ObservationUploader(self.http, self.ontology)
        records = self.observation_store.read(window.start, window.end)
        return uploader.upload(metadata, records, window, property_filter)

    def require_time_zone(self, metadata: StationMetadata) -> None:
        """Fail before any download when row timestamps cannot be normalized."""
        if metadata.is_empty:
            raise MetadataError(
                f"Station {metadata.id} has no metadata; run 'get metadata' first"
            )
        parse_offset(metadata.timezone_offset)


def complete_lines(body: bytes) -> Tuple[str, int]:
    """
    Cut a body after its last newline.

    Returns the decoded text and the number of bytes it covers, so a
    trailing record that is still being written is fetched again on the
    next resume.
    """
    end = body.rfind(b"\n") + 1
    return body[:end].decode("utf-8", errors="replace"), end


def download_rows(
    context: StationContext,
    url: str,
    parse_file: Callable[[str, Optional[str]], tuple],
    parse_rows: Callable[[str, List[str], Optional[str]], List[ObservationRecord]],
    zone_offset: Optional[str],
) -> Tuple[List[ObservationRecord], Optional[DownloadState]]:
    """
    Fetch new rows of a row-oriented data file.

    Resumes from the cached byte offset when the file header was captured
    by an earlier full download. Returns the parsed records and the new
    download state, or ``None`` as state when nothing changed.
    """
    state = context.download_states.get(url)
    prior = state.content_length if state and state.header else None

    result = download.fetch(context.http, url, prior)

    if isinstance(result, download.Failed):
        result.raise_error()
    if isinstance(result, download.NoNewData):
        return [], None

    text, consumed = complete_lines(result.body)

    if isinstance(result, download.FullData):
        header, records = parse_file(text, zone_offset)
        new_state = DownloadState(
            url=url,
            content_length=consumed,
            last_modified=result.last_modified,
            full_file=True,
            header=list(header.fields),
        )
    else:
        records = parse_rows(text, state.header, zone_offset)
        new_state = DownloadState(
            url=url,
            content_length=prior + consumed,
            last_modified=result.last_modified,
            full_file=False,
            header=list(state.header),
        )

    logger.info(f"Parsed {len(records)} observations from {url}")
    return records, new_state


def build_datastream(
    ontology: Ontology, source_property_id: str, units: Optional[str] = None
) -> DatastreamDef:
    """Describe one source property using the source's ontology."""
    entry = ontology.resolve(source_property_id)
    if not entry.is_known:
        logger.warning(f"No ontology entry for property '{source_property_id}'")
    return DatastreamDef(
        source_property_id=source_property_id,
        canonical_label=entry.label,
        unit_of_measure_code=entry.unit_code,
        observation_type_uri=entry.observation_type,
        units=units,
    )
