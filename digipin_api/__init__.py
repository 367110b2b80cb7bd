"""DIGIPIN encoding and decoding for the India Post grid, with an HTTP API."""

__version__ = "1.0.0"

from digipin_api.digipin import (BOUNDS, DIGIPIN_GRID, DigiPinError, FormatError,
                                 InvalidSymbolError, OutOfRangeError, format_digipin,
                                 get_digipin, get_lat_lng_from_digipin, is_valid_digipin)

__all__ = [
    "BOUNDS",
    "DIGIPIN_GRID",
    "DigiPinError",
    "FormatError",
    "InvalidSymbolError",
    "OutOfRangeError",
    "format_digipin",
    "get_digipin",
    "get_lat_lng_from_digipin",
    "is_valid_digipin",
]
