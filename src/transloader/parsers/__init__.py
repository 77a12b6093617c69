"""
Decoders for each source's wire format.
"""

from . import data_garrison, swob, toa5

__all__ = ["data_garrison", "swob", "toa5"]
