"""
Station variants, one per data source.
"""

from .base import Station
from .campbell_scientific import CampbellScientificStation
from .common import StationContext
from .data_garrison import DataGarrisonStation
from .environment_canada import EnvironmentCanadaStation

__all__ = [
    "Station",
    "StationContext",
    "CampbellScientificStation",
    "DataGarrisonStation",
    "EnvironmentCanadaStation",
]
