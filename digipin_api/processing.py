# digipin_api/processing.py
import logging

import pandas as pd
from tqdm import tqdm

from digipin_api import config
from digipin_api.digipin import (DigiPinError, get_digipin,
                                 get_lat_lng_from_digipin)

tqdm.pandas()

logger = logging.getLogger(__name__)

DECODED_LAT_COL = "decoded_latitude"
DECODED_LON_COL = "decoded_longitude"


class MissingColumnError(KeyError):
    """The uploaded CSV lacks a column the pipeline needs."""

    def __init__(self, column: str):
        super().__init__(column)
        self.column = column

    def __str__(self):
        return f"CSV is missing the required column '{self.column}'"


def _require_columns(df: pd.DataFrame, *columns: str):
    for column in columns:
        if column not in df.columns:
            raise MissingColumnError(column)


def run_encoding_pipeline(
    csv_file,
    include_hyphens: bool = True,
    lat_col: str = None,
    lon_col: str = None,
    code_col: str = None,
) -> pd.DataFrame:
    """
    Reads a CSV of coordinates and adds a DIGIPIN column.

    Rows whose coordinates are missing, non-numeric or outside the DIGIPIN
    region get an empty code instead of failing the whole file.
    """
    lat_col = lat_col or config.BATCH_LAT_COL
    lon_col = lon_col or config.BATCH_LON_COL
    code_col = code_col or config.BATCH_CODE_COL

    df = pd.read_csv(csv_file)
    _require_columns(df, lat_col, lon_col)
    logger.info("Encoding %d rows", len(df))

    df[lat_col] = pd.to_numeric(df[lat_col], errors='coerce')
    df[lon_col] = pd.to_numeric(df[lon_col], errors='coerce')

    if df.empty:
        df[code_col] = pd.Series(dtype=object)
        return df

    def safe_digipin(row):
        if pd.isna(row[lat_col]) or pd.isna(row[lon_col]):
            return None
        try:
            return get_digipin(row[lat_col], row[lon_col], include_hyphens=include_hyphens)
        except DigiPinError:
            return None

    df[code_col] = df.progress_apply(safe_digipin, axis=1)

    skipped = int(df[code_col].isna().sum())
    if skipped:
        logger.warning("%d rows had no encodable coordinates and were left blank", skipped)
    return df


def run_decoding_pipeline(csv_file, code_col: str = None) -> pd.DataFrame:
    """
    Reads a CSV of DIGIPIN codes and adds the decoded cell centre.

    The centre is written as strings formatted to 6 decimal places; invalid
    codes leave both columns blank.
    """
    code_col = code_col or config.BATCH_CODE_COL

    df = pd.read_csv(csv_file, dtype=str)
    _require_columns(df, code_col)
    logger.info("Decoding %d rows", len(df))

    if df.empty:
        df[DECODED_LAT_COL] = pd.Series(dtype=object)
        df[DECODED_LON_COL] = pd.Series(dtype=object)
        return df

    def safe_decode(code):
        if pd.isna(code):
            return (None, None)
        try:
            coords = get_lat_lng_from_digipin(code.strip())
        except DigiPinError:
            return (None, None)
        return (coords['latitude'], coords['longitude'])

    decoded = df[code_col].progress_apply(safe_decode)
    df[DECODED_LAT_COL] = decoded.map(lambda pair: pair[0])
    df[DECODED_LON_COL] = decoded.map(lambda pair: pair[1])

    skipped = int(df[DECODED_LAT_COL].isna().sum())
    if skipped:
        logger.warning("%d rows held invalid DigiPin codes and were left blank", skipped)
    return df
