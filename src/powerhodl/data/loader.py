"""
Ratio Data Loader
Normalizes market-data rows from files, database row sets or API payloads
into the chronological ETH/BTC ratio series the engine consumes.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger


RATIO_COLUMNS = ('ratio', 'eth_btc_ratio', 'ethBtcRatio', 'close')
DATE_COLUMNS = ('date', 'timestamp', 'collected_at', 'created_at', 'time')
ETH_PRICE_COLUMNS = ('eth_price', 'eth_price_usd', 'ethPrice')
BTC_PRICE_COLUMNS = ('btc_price', 'btc_price_usd', 'btcPrice')


def to_ratio_series(
    data: Union[pd.DataFrame, Iterable[Dict[str, Any]]],
    date_column: Optional[str] = None,
    ratio_column: Optional[str] = None,
) -> pd.Series:
    """
    Normalize raw rows into a clean ETH/BTC ratio series.

    The ratio is taken from the first available ratio column; when none is
    present it is derived as ``eth_price / btc_price``.

    Parameters
    ----------
    data : pd.DataFrame or iterable of dict
        Raw rows. Must contain a date column and either a ratio column or
        ETH and BTC price columns.
    date_column : str, optional
        Name of the date column. Detected from common names if omitted.
    ratio_column : str, optional
        Name of the ratio column. Detected from common names if omitted.

    Returns
    -------
    pd.Series
        Float ratios named 'ratio', indexed by timestamp (index name 'date'),
        sorted ascending with duplicate dates removed (last row wins).

    Raises
    ------
    ValueError
        If no date column, or neither a ratio nor a price pair, is found.

    Warns
    -----
    UserWarning
        When rows with missing, non-positive or unparseable values are
        dropped.

    Examples
    --------
    >>> rows = [
    ...     {'date': '2025-01-01', 'eth_price': 3300.0, 'btc_price': 94000.0},
    ...     {'date': '2025-01-02', 'eth_price': 3450.0, 'btc_price': 96800.0},
    ... ]
    >>> to_ratio_series(rows).round(4).tolist()
    [0.0351, 0.0356]
    """
    df = data.copy() if isinstance(data, pd.DataFrame) else pd.DataFrame(list(data))
    if df.empty:
        raise ValueError("No market data rows supplied")

    date_col = date_column or _find_column(df, DATE_COLUMNS)
    if date_col is None or date_col not in df.columns:
        raise ValueError(
            f"No date column found. Expected one of {DATE_COLUMNS}, "
            f"available columns: {list(df.columns)}"
        )

    ratio_col = ratio_column or _find_column(df, RATIO_COLUMNS)
    if ratio_col is not None:
        if ratio_col not in df.columns:
            raise ValueError(f"Ratio column {ratio_col!r} not found")
        ratio = pd.to_numeric(df[ratio_col], errors='coerce')
    else:
        eth_col = _find_column(df, ETH_PRICE_COLUMNS)
        btc_col = _find_column(df, BTC_PRICE_COLUMNS)
        if eth_col is None or btc_col is None:
            raise ValueError(
                "Data needs a ratio column or both ETH and BTC price columns, "
                f"available columns: {list(df.columns)}"
            )
        eth_price = pd.to_numeric(df[eth_col], errors='coerce')
        btc_price = pd.to_numeric(df[btc_col], errors='coerce')
        with np.errstate(divide='ignore', invalid='ignore'):
            ratio = eth_price / btc_price.where(btc_price > 0)

    dates = pd.to_datetime(df[date_col], errors='coerce', utc=True).dt.tz_localize(None)

    valid = dates.notna() & ratio.notna() & np.isfinite(ratio) & (ratio > 0)
    dropped = int((~valid).sum())
    if dropped:
        message = f"Dropped {dropped} of {len(df)} rows with missing or non-positive ratio/date"
        warnings.warn(message)
        logger.warning(message)

    series = pd.Series(
        ratio[valid].to_numpy(dtype=float),
        index=pd.DatetimeIndex(dates[valid], name='date'),
        name='ratio',
    )
    series = series.sort_index(kind='mergesort')
    return series[~series.index.duplicated(keep='last')]


def from_observations(dates: Sequence[Any], ratios: Sequence[float]) -> pd.Series:
    """
    Build a ratio series from already-clean parallel sequences.

    Values are not re-validated.
    """
    if len(dates) != len(ratios):
        raise ValueError(f"dates and ratios differ in length: {len(dates)} vs {len(ratios)}")
    return pd.Series(
        np.asarray(ratios, dtype=float),
        index=pd.DatetimeIndex(pd.to_datetime(list(dates)), name='date'),
        name='ratio',
    )


def load_ratio_file(path: Union[str, Path], **kwargs: Any) -> pd.Series:
    """
    Read a CSV or JSON market-data file and normalize it.

    Parameters
    ----------
    path : str or Path
        File with a '.csv' or '.json' suffix. JSON must be a list of records.
    **kwargs
        Forwarded to :func:`to_ratio_series`.

    Raises
    ------
    ValueError
        For unsupported file suffixes.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == '.csv':
        df = pd.read_csv(path)
    elif suffix == '.json':
        df = pd.read_json(path, orient='records', convert_dates=False)
    else:
        raise ValueError(f"Unsupported market data file type: {path.suffix!r}")

    logger.info("Loaded {} rows from {}", len(df), path)
    return to_ratio_series(df, **kwargs)


def _find_column(df: pd.DataFrame, candidates: Sequence[str]) -> Optional[str]:
    for name in candidates:
        if name in df.columns:
            return name
    return None


__all__ = ['to_ratio_series', 'from_observations', 'load_ratio_file']
