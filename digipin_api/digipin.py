# digipin_api/digipin.py
import math
import numbers
from types import MappingProxyType

DIGIPIN_GRID = (
    ('F', 'C', '9', '8'),
    ('J', '3', '2', '7'),
    ('K', '4', '5', '6'),
    ('L', 'M', 'P', 'T'),
)

BOUNDS = MappingProxyType({
    'minLat': 2.5,
    'maxLat': 38.5,
    'minLon': 63.5,
    'maxLon': 99.5,
})

# Lookup map from character to its (row, col) index, built once at import.
CHAR_TO_INDEX = MappingProxyType({
    char: (r, c)
    for r, row_list in enumerate(DIGIPIN_GRID)
    for c, char in enumerate(row_list)
})

LEVELS = 10
SEPARATOR = '-'


# --- Errors ---

class DigiPinError(ValueError):
    """Base class for every DIGIPIN encode/decode failure."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'error': self.message}


class OutOfRangeError(DigiPinError):
    """A coordinate is not a finite number or lies outside BOUNDS."""

    def __init__(self, message: str, bound=None):
        super().__init__(message)
        self.bound = bound

    def __reduce__(self):
        return (type(self), (self.message, self.bound))


class FormatError(DigiPinError):
    """A code is not a string or does not hold exactly 10 symbols."""


class InvalidSymbolError(DigiPinError):
    """A code contains a character outside the DIGIPIN alphabet."""

    def __init__(self, message: str, char: str = None):
        super().__init__(message)
        self.char = char

    def __reduce__(self):
        return (type(self), (self.message, self.char))


# --- Validation ---

def _check_coordinate(value, name: str, min_key: str, max_key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise OutOfRangeError(f'{name} must be a valid number')
    try:
        value = float(value)
    except (OverflowError, TypeError, ValueError):
        raise OutOfRangeError(f'{name} must be a valid number') from None
    if not math.isfinite(value):
        raise OutOfRangeError(f'{name} must be a valid number')

    low, high = BOUNDS[min_key], BOUNDS[max_key]
    if value < low:
        raise OutOfRangeError(
            f'{name} {value} is below {min_key}={low} (must be between {low} and {high})',
            bound=min_key,
        )
    if value > high:
        raise OutOfRangeError(
            f'{name} {value} is above {max_key}={high} (must be between {low} and {high})',
            bound=max_key,
        )
    return value


def _strip(digipin: str) -> str:
    return digipin.replace(SEPARATOR, '')


def is_valid_digipin(digipin) -> bool:
    """Returns True if `digipin` is a well-formed code. Never raises."""
    if not isinstance(digipin, str):
        return False
    pin = _strip(digipin)
    if len(pin) != LEVELS:
        return False
    return all(char in CHAR_TO_INDEX for char in pin)


def format_digipin(digipin: str) -> str:
    """
    Renders a valid code in its canonical hyphenated 3-3-4 form.

    Raises:
        FormatError, InvalidSymbolError: If the code is not valid.
    """
    pin = _validated_pin(digipin)
    return f"{pin[:3]}{SEPARATOR}{pin[3:6]}{SEPARATOR}{pin[6:]}"


def _validated_pin(digipin) -> str:
    if not isinstance(digipin, str):
        raise FormatError('DigiPin must be a string')
    pin = _strip(digipin)
    if len(pin) != LEVELS:
        raise FormatError(
            f'DigiPin must be {LEVELS} characters long (excluding hyphens), got {len(pin)}'
        )
    for char in pin:
        if char not in CHAR_TO_INDEX:
            raise InvalidSymbolError(f"Invalid character '{char}' in DigiPin", char=char)
    return pin


# --- Codec ---

def get_digipin(lat: float, lon: float, include_hyphens: bool = True) -> str:
    """
    Encodes a latitude and longitude into a 10-digit alphanumeric DIGIPIN.

    Args:
        lat: The latitude coordinate.
        lon: The longitude coordinate.
        include_hyphens: Insert a hyphen after the 3rd and 6th symbol.

    Returns:
        The DIGIPIN string, e.g. "39J-49L-L8T4" (or "39J49LL8T4").

    Raises:
        OutOfRangeError: If the latitude or longitude is not a finite
            number or is out of the defined bounds.
    """
    lat = _check_coordinate(lat, 'Latitude', 'minLat', 'maxLat')
    lon = _check_coordinate(lon, 'Longitude', 'minLon', 'maxLon')

    min_lat, max_lat = BOUNDS['minLat'], BOUNDS['maxLat']
    min_lon, max_lon = BOUNDS['minLon'], BOUNDS['maxLon']

    digipin_chars = []

    for level in range(1, LEVELS + 1):
        lat_div = (max_lat - min_lat) / 4
        lon_div = (max_lon - min_lon) / 4

        # Rows count down from the north, columns count up to the east
        row = 3 - math.floor((lat - min_lat) / lat_div)
        col = math.floor((lon - min_lon) / lon_div)

        # A point on the upper/right edge lands on index 4 (or -1 for rows)
        row = max(0, min(row, 3))
        col = max(0, min(col, 3))

        digipin_chars.append(DIGIPIN_GRID[row][col])
        if include_hyphens and level in (3, 6):
            digipin_chars.append(SEPARATOR)

        # Zoom into the selected cell
        max_lat = min_lat + lat_div * (4 - row)
        min_lat = min_lat + lat_div * (3 - row)
        min_lon = min_lon + lon_div * col
        max_lon = min_lon + lon_div

    return ''.join(digipin_chars)


def get_lat_lng_from_digipin(digipin: str) -> dict:
    """
    Decodes a DIGIPIN back into its central latitude and longitude.

    Args:
        digipin: The 10-character DIGIPIN string (hyphens are optional).

    Returns:
        A dictionary containing the 'latitude' and 'longitude' as strings
        formatted to 6 decimal places.

    Raises:
        FormatError: If the DIGIPIN is not a string of 10 symbols.
        InvalidSymbolError: If the DIGIPIN holds an unknown character.
    """
    pin = _validated_pin(digipin)

    min_lat, max_lat = BOUNDS['minLat'], BOUNDS['maxLat']
    min_lon, max_lon = BOUNDS['minLon'], BOUNDS['maxLon']

    for char in pin:
        ri, ci = CHAR_TO_INDEX[char]

        lat_div = (max_lat - min_lat) / 4
        lon_div = (max_lon - min_lon) / 4

        # Latitude is measured down from max_lat
        max_lat = max_lat - lat_div * ri
        min_lat = max_lat - lat_div
        min_lon = min_lon + lon_div * ci
        max_lon = min_lon + lon_div

    center_lat = (min_lat + max_lat) / 2
    center_lon = (min_lon + max_lon) / 2

    return {
        'latitude': f"{center_lat:.6f}",
        'longitude': f"{center_lon:.6f}"
    }
