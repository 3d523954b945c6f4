import logging

import pandas as pd

from vapotank_dashboard.config import DATA_PATH, DAYFIRST, REQUIRED_COLUMNS

logger = logging.getLogger(__name__)

# Leading decimal number, read the way a lenient float parser reads "12.5 €"
_LEADING_NUMBER = r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"


class OrdersLoadError(Exception):
    """The order export could not be read."""

    def __init__(self, path, cause):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Could not load orders from {self.path}: {cause}")


# -----------------------------------------------------------------------------
# Coercion helpers
# -----------------------------------------------------------------------------
def to_number(series: pd.Series) -> pd.Series:
    """Decimal comma -> dot (first one only), leading number kept, anything else 0."""
    s = series.astype(str).str.replace(",", ".", n=1, regex=False)
    return pd.to_numeric(s.str.extract(_LEADING_NUMBER, expand=False), errors="coerce").fillna(0.0).astype(float)


def parse_dates(series: pd.Series, dayfirst: bool = DAYFIRST) -> pd.Series:
    # Unparseable values become NaT, which fails every comparison.
    parsed = pd.to_datetime(series.astype(str), errors="coerce", format="mixed", dayfirst=dayfirst, utc=True)
    return parsed.dt.tz_localize(None)


def parse_bound(value) -> pd.Timestamp:
    """Filter bound -> midnight of that day (NaT if unreadable)."""
    ts = pd.to_datetime(value, errors="coerce")
    return ts if pd.isna(ts) else ts.normalize()


def empty_orders() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=str) for c in REQUIRED_COLUMNS})


# -----------------------------------------------------------------------------
# Loader
# -----------------------------------------------------------------------------
def load_orders(path=DATA_PATH) -> pd.DataFrame:
    """Read the export as strings, header row as column names, source order kept.

    Blank lines are skipped, short rows padded with empty strings and long
    rows cut to the header width. Columns the metrics rely on but the file
    lacks are added empty; nothing else about the layout is checked.
    """
    long_rows = []

    try:
        width = len(pd.read_csv(path, nrows=0, encoding="utf-8-sig").columns)

        def keep_known_fields(fields):
            long_rows.append(fields)
            return fields[:width]

        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
            engine="python",
            on_bad_lines=keep_known_fields,
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.error("Failed to read %s: %s", path, e)
        raise OrdersLoadError(path, e) from e

    df = df.fillna("")
    if long_rows:
        logger.warning("%d rows in %s have more than %d fields; extra cells dropped", len(long_rows), path, width)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        logger.warning("%s is missing columns %s; treating them as empty", path, missing)
        for c in missing:
            df[c] = ""

    logger.info("Loaded %d rows from %s", len(df), path)
    return df.reset_index(drop=True)
