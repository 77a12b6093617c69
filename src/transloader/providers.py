"""
Providers hand out stations for one data source and own its cache directory.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Type, Union

from .cache import MetadataCache
from .config import TransloaderConfig
from .exceptions import DownloadError, HTTPStatusError
from .http import HTTPClient
from .ontology import Ontology
from .parsers import swob
from .stations import (
    CampbellScientificStation,
    DataGarrisonStation,
    EnvironmentCanadaStation,
    StationContext,
)

logger = logging.getLogger(__name__)


class BaseProvider:
    """
    Common setup for all providers.

    Args:
        cache_dir: Root of the cache; the provider uses ``<cache>/v2/<source>``
        http: Shared HTTP transport; created from ``config`` when omitted
        config: Transport and cache settings
    """

    SOURCE = ""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        http: Optional[HTTPClient] = None,
        config: Optional[TransloaderConfig] = None,
    ):
        self.config = config or TransloaderConfig()
        self.http = http or HTTPClient(self.config)
        self.cache_path = Path(cache_dir) / self.config.cache_version / self.SOURCE
        self.metadata_cache = MetadataCache(self.cache_path / "metadata")
        self.ontology = Ontology.for_source(self.SOURCE)

    def context_for(self, station_id: str) -> StationContext:
        return StationContext.create(
            station_id, self.cache_path, self.http, self.ontology, self.metadata_cache
        )

    def _load_or_download(self, station):
        if self.metadata_cache.exists(station.id):
            station.metadata = self.metadata_cache.load(station.id)
            logger.debug(f"Loaded cached metadata for station {station.id}")
        else:
            station.download_metadata()
        return station


class EnvironmentCanadaProvider(BaseProvider):
    """Stations from the Environment Canada SWOB-ML feed."""

    SOURCE = "environment_canada"
    METADATA_URL = "https://dd.weather.gc.ca/observations/doc/swob-xml_station_list.csv"

    def __init__(
        self,
        cache_dir: Union[str, Path],
        http: Optional[HTTPClient] = None,
        config: Optional[TransloaderConfig] = None,
    ):
        super().__init__(cache_dir, http, config)
        self._stations: Optional[List[swob.StationListEntry]] = None

    @property
    def stations_path(self) -> Path:
        return self.cache_path / "stations.csv"

    def stations(self) -> List[swob.StationListEntry]:
        """
        The SWOB-ML station list.

        Downloaded once and kept in ``stations.csv``; later calls read the
        cached copy.
        """
        if self._stations is not None:
            return self._stations

        if self.stations_path.exists():
            text = self.stations_path.read_text(encoding="utf-8")
        else:
            logger.info(f"Downloading station list: {self.METADATA_URL}")
            try:
                response = self.http.get(self.METADATA_URL)
            except HTTPStatusError as e:
                raise DownloadError(
                    f"Error downloading station list: {e}",
                    self.METADATA_URL,
                    e.status_code,
                ) from e
            text = response.text
            self.stations_path.write_text(text, encoding="utf-8")

        self._stations = swob.parse_station_list(text)
        return self._stations

    def new_station(self, station_id: str) -> EnvironmentCanadaStation:
        return EnvironmentCanadaStation(
            station_id, self.context_for(station_id), self.stations
        )

    def get_station(self, station_id: str) -> EnvironmentCanadaStation:
        return self._load_or_download(self.new_station(station_id))


class CampbellScientificProvider(BaseProvider):
    """Stations whose Campbell Scientific loggers publish TOA5 files."""

    SOURCE = "campbell_scientific"

    def new_station(
        self, station_id: str, data_urls: Optional[List[str]] = None
    ) -> CampbellScientificStation:
        return CampbellScientificStation(
            station_id, self.context_for(station_id), data_urls
        )

    def get_station(
        self, station_id: str, data_urls: Optional[List[str]] = None
    ) -> CampbellScientificStation:
        return self._load_or_download(self.new_station(station_id, data_urls))


class DataGarrisonProvider(BaseProvider):
    """Stations hosted on the Data Garrison portal."""

    SOURCE = "data_garrison"

    def new_station(self, user_id: str, station_id: str) -> DataGarrisonStation:
        return DataGarrisonStation(user_id, station_id, self.context_for(station_id))

    def get_station(self, user_id: str, station_id: str) -> DataGarrisonStation:
        return self._load_or_download(self.new_station(user_id, station_id))


PROVIDERS: Dict[str, Type[BaseProvider]] = {
    EnvironmentCanadaProvider.SOURCE: EnvironmentCanadaProvider,
    CampbellScientificProvider.SOURCE: CampbellScientificProvider,
    DataGarrisonProvider.SOURCE: DataGarrisonProvider,
}


def get_provider(
    source: str,
    cache_dir: Union[str, Path],
    http: Optional[HTTPClient] = None,
    config: Optional[TransloaderConfig] = None,
) -> BaseProvider:
    """Create the provider for a source tag such as ``environment_canada``."""
    if source not in PROVIDERS:
        raise ValueError(
            f"Unknown source '{source}'. Choose from: {', '.join(PROVIDERS)}"
        )
    return PROVIDERS[source](cache_dir, http, config)
