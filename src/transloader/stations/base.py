"""
Interface shared by every station variant.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Union

from ..models import ObservationRecord, StationMetadata
from ..timeutil import Interval


class Station(Protocol):
    """A weather station from one data source."""

    id: str
    metadata: StationMetadata

    def download_metadata(self) -> StationMetadata:
        ...

    def save_metadata(self) -> Path:
        ...

    def upload_metadata(
        self,
        destination: str,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> StationMetadata:
        ...

    def download_observations(self) -> List[ObservationRecord]:
        ...

    def upload_observations(
        self,
        destination: str,
        interval: Union[str, Interval],
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> int:
        ...
