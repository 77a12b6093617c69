"""
Campbell Scientific dataloggers publishing TOA5 files over HTTP.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .. import download
from ..exceptions import MetadataError
from ..models import ObservationRecord, StationMetadata
from ..parsers import toa5
from ..timeutil import Interval
from .common import StationContext, build_datastream, complete_lines, download_rows

logger = logging.getLogger(__name__)


class CampbellScientificStation:
    """
    A logger whose tables are published as one or more TOA5 files.

    TOA5 files carry neither coordinates nor a time zone; both must be set
    in the cached metadata before uploading entities or downloading
    observations.

    Args:
        station_id: Operator-chosen station identifier
        context: Cache and transport collaborators
        data_urls: TOA5 file URLs; defaults to those in the cached metadata
        metadata: Previously cached metadata, if any
    """

    def __init__(
        self,
        station_id: str,
        context: StationContext,
        data_urls: Optional[List[str]] = None,
        metadata: Optional[StationMetadata] = None,
    ):
        self.id = station_id
        self.context = context
        self.metadata = metadata or StationMetadata(id=station_id)
        self._data_urls = list(data_urls) if data_urls else None

    @property
    def data_urls(self) -> List[str]:
        if self._data_urls:
            return self._data_urls
        return list(self.metadata.properties.get("data_urls", []))

    def _download_header(self, url: str) -> toa5.Toa5Header:
        result = download.fetch(self.context.http, url, None)
        if isinstance(result, download.Failed):
            result.raise_error()
        text, _ = complete_lines(result.body)
        header_text, _ = toa5.split_header(text)
        return toa5.parse_header(header_text)

    def download_metadata(self) -> StationMetadata:
        """Build metadata from the header of every TOA5 file."""
        urls = self.data_urls
        if not urls:
            raise MetadataError(f"Station {self.id} has no data URLs")

        metadata = StationMetadata(id=self.id, properties={"data_urls": urls})
        data_files = []

        for url in urls:
            header = self._download_header(url)
            environment = header.environment
            metadata.name = metadata.name or environment.get("station_name")
            for key in ("logger_model", "logger_serial", "os_version", "program"):
                metadata.properties.setdefault(key, environment.get(key))
            data_files.append({"url": url, "table_name": environment.get("table_name")})

            for name in header.property_fields:
                if metadata.datastream(name) is None:
                    metadata.datastreams.append(
                        build_datastream(
                            self.context.ontology, name, header.units_for(name)
                        )
                    )

        metadata.properties["data_files"] = data_files
        self.metadata = self.context.refresh(metadata, self.metadata)
        logger.info(
            f"Downloaded metadata for station {self.id}: "
            f"{len(self.metadata.datastreams)} datastreams from {len(urls)} files"
        )
        return self.metadata

    def save_metadata(self) -> Path:
        return self.context.save_metadata(self.metadata)

    def upload_metadata(
        self,
        destination: str,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> StationMetadata:
        return self.context.upload_metadata(self.metadata, destination, allowed, blocked)

    def download_observations(self) -> List[ObservationRecord]:
        """Download new rows from every TOA5 file and cache them."""
        self.context.require_time_zone(self.metadata)

        records: List[ObservationRecord] = []
        for url in self.data_urls:
            new_records, state = download_rows(
                self.context,
                url,
                toa5.parse_file,
                toa5.parse_rows,
                self.metadata.timezone_offset,
            )
            self.context.observation_store.append(new_records)
            if state is not None:
                self.context.download_states.put(state)
            records.extend(new_records)
        return records

    def upload_observations(
        self,
        destination: str,
        interval: Union[str, Interval],
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> int:
        return self.context.upload_observations(
            self.metadata, destination, interval, allowed, blocked
        )
