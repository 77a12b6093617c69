"""
Synchronize weather station data with an OGC SensorThings API.

Downloads metadata and observations from Environment Canada SWOB-ML,
Data Garrison and Campbell Scientific TOA5 sources into a local cache and
uploads them as SensorThings entities and Observations.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from . import download, parsers
from .cache import DownloadStateCache, MetadataCache, ObservationStore
from .config import TransloaderConfig
from .download import DownloadResult, Failed, FullData, NoNewData, PartialData
from .exceptions import (
    ConfigurationError,
    DownloadError,
    EntityCreationError,
    HTTPStatusError,
    InvalidFilterError,
    MetadataError,
    MissingDatastreamError,
    ParseError,
    TimestampError,
    TransloaderConnectionError,
    TransloaderError,
)
from .http import HTTPClient
from .models import (
    DatastreamDef,
    DownloadState,
    ObservationRecord,
    PropertyFilter,
    StationMetadata,
)
from .ontology import Ontology, OntologyEntry
from .providers import (
    CampbellScientificProvider,
    DataGarrisonProvider,
    EnvironmentCanadaProvider,
    get_provider,
)
from .sensorthings import EntitySynchronizer, ObservationUploader, SensorThingsClient
from .stations import (
    CampbellScientificStation,
    DataGarrisonStation,
    EnvironmentCanadaStation,
    Station,
)
from .timeutil import Interval, parse_interval

__all__ = [
    # Configuration and transport
    "TransloaderConfig",
    "HTTPClient",
    # Exceptions
    "TransloaderError",
    "TransloaderConnectionError",
    "HTTPStatusError",
    "DownloadError",
    "EntityCreationError",
    "MissingDatastreamError",
    "MetadataError",
    "ParseError",
    "TimestampError",
    "InvalidFilterError",
    "ConfigurationError",
    # Data models
    "DatastreamDef",
    "DownloadState",
    "ObservationRecord",
    "PropertyFilter",
    "StationMetadata",
    "Interval",
    "parse_interval",
    # Downloads
    "download",
    "DownloadResult",
    "FullData",
    "PartialData",
    "NoNewData",
    "Failed",
    # Caches
    "MetadataCache",
    "DownloadStateCache",
    "ObservationStore",
    # Ontology and SensorThings
    "Ontology",
    "OntologyEntry",
    "SensorThingsClient",
    "EntitySynchronizer",
    "ObservationUploader",
    # Sources
    "parsers",
    "Station",
    "EnvironmentCanadaStation",
    "CampbellScientificStation",
    "DataGarrisonStation",
    "EnvironmentCanadaProvider",
    "CampbellScientificProvider",
    "DataGarrisonProvider",
    "get_provider",
]
