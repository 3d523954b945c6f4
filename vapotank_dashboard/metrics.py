import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from itertools import combinations
from typing import Callable, List, Optional, Tuple

import numpy as np
import pandas as pd

from vapotank_dashboard.config import (
    COL_DATE,
    COL_EMAIL,
    COL_ITEM,
    COL_ORDER,
    COL_QTY,
    COL_TOTAL,
    DISPLAY_DATE_FORMAT,
    DISPLAY_REPARSE_FORMAT,
    DORMANT_DAYS,
    ELIQUID_BRAND_PATTERN,
    ELIQUID_MARKER,
    TOP_N,
    UNKNOWN_BRAND,
    WEEKDAYS,
)
from vapotank_dashboard.loader import parse_bound, parse_dates, to_number

logger = logging.getLogger(__name__)

_BRAND_RE = re.compile(ELIQUID_BRAND_PATTERN)


# -----------------------------------------------------------------------------
# Types
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FilterCriteria:
    search: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def is_empty(self) -> bool:
        return not (self.search or self.date_from or self.date_to)


@dataclass(frozen=True)
class Kpis:
    total_sales: float = 0.0
    total_orders: int = 0
    average_order_value: float = 0.0
    repeat_rate: float = 0.0


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def first_rows(rows: pd.DataFrame) -> pd.DataFrame:
    """One row per order number: the first one, which carries the order-level fields."""
    return rows.drop_duplicates(subset=COL_ORDER, keep="first")


def order_sequence(order_numbers: pd.Series) -> np.ndarray:
    """Positions that walk order numbers numerically (ascending), then the rest as they appear.

    Plain non-negative integers below 2**32 - 1 count as numeric; "007" or
    "A-12" do not.
    """
    keys = order_numbers.astype(str)
    numeric = keys.str.fullmatch(r"0|[1-9]\d{0,9}").fillna(False).to_numpy(dtype=bool)
    value = pd.to_numeric(keys.where(numeric), errors="coerce").fillna(0).to_numpy()
    numeric &= value < 2**32 - 1
    # lexsort: last key is the primary one
    return np.lexsort((np.arange(len(keys)), np.where(numeric, value, 0), ~numeric))


def orders_by_number(rows: pd.DataFrame) -> pd.DataFrame:
    """First row of each order, walked in order-number sequence."""
    orders = first_rows(rows)
    return orders.iloc[order_sequence(orders[COL_ORDER])]


def order_level_conflicts(rows: pd.DataFrame) -> List[str]:
    """Order numbers whose rows disagree on total, date or email."""
    if rows.empty:
        return []
    distinct = rows.groupby(COL_ORDER, sort=False)[[COL_TOTAL, COL_DATE, COL_EMAIL]].nunique()
    return distinct.index[(distinct > 1).any(axis=1)].tolist()


def _ranked(totals: pd.Series, limit: Optional[int] = None) -> List[Tuple[str, float]]:
    # sorted() is stable, so ties keep the order they were accumulated in
    ranked = sorted(((k, float(v)) for k, v in totals.items()), key=lambda kv: kv[1], reverse=True)
    return ranked[:limit] if limit is not None else ranked


def _serialize(record: dict) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


# -----------------------------------------------------------------------------
# Filter stage
# -----------------------------------------------------------------------------
def apply_filters(rows: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    """Rows matching the free-text query and the inclusive date range, in source order.

    The query is matched case-insensitively against the whole row serialized
    as JSON (column names included). Dates are compared by calendar day; a
    row whose date cannot be parsed never passes a date bound.
    """
    if rows.empty or criteria.is_empty():
        return rows

    mask = pd.Series(True, index=rows.index)
    if criteria.search:
        haystack = pd.Series(
            [_serialize(r).lower() for r in rows.to_dict("records")],
            index=rows.index,
        )
        mask &= haystack.str.contains(criteria.search.lower(), regex=False)

    if criteria.date_from or criteria.date_to:
        day = parse_dates(rows[COL_DATE]).dt.normalize()
        if criteria.date_from:
            mask &= day >= parse_bound(criteria.date_from)
        if criteria.date_to:
            mask &= day <= parse_bound(criteria.date_to)

    return rows.loc[mask]


# -----------------------------------------------------------------------------
# Aggregators
# -----------------------------------------------------------------------------
def compute_kpis(rows: pd.DataFrame) -> Kpis:
    orders = first_rows(rows)
    tx = len(orders)
    if not tx:
        return Kpis()
    ts = float(to_number(orders[COL_TOTAL]).sum())
    # customers with more than one distinct order
    repeaters = int((orders[COL_EMAIL].value_counts() > 1).sum())
    return Kpis(total_sales=ts, total_orders=tx, average_order_value=ts / tx, repeat_rate=repeaters / tx)


def top_products(rows: pd.DataFrame, limit: int = TOP_N) -> List[Tuple[str, float]]:
    """Net quantity per item name over every line, best sellers first."""
    if rows.empty:
        return []
    qty = to_number(rows[COL_QTY]).groupby(rows[COL_ITEM], sort=False).sum()
    return _ranked(qty, limit)


def top_customers(rows: pd.DataFrame, limit: int = TOP_N) -> List[Tuple[str, float]]:
    orders = orders_by_number(rows)
    if orders.empty:
        return []
    spend = to_number(orders[COL_TOTAL]).groupby(orders[COL_EMAIL], sort=False).sum()
    return _ranked(spend, limit)


def dormant_customers(
    rows: pd.DataFrame,
    now=None,
    days: int = DORMANT_DAYS,
    date_format: str = DISPLAY_DATE_FORMAT,
    sort_by_display: bool = True,
) -> List[Tuple[str, str]]:
    """Customers whose latest order is at least ``days`` old, as (email, shown date).

    The list is ordered by the shown date read back month-first, the way the
    dashboard has always ordered it; shown dates that do not read back sort
    last. Pass ``sort_by_display=False`` to order by the real date instead.
    """
    if rows.empty:
        return []
    last = parse_dates(rows[COL_DATE]).groupby(rows[COL_EMAIL], sort=False).max()
    cutoff = pd.Timestamp(now if now is not None else datetime.now()) - pd.Timedelta(days=days)
    dormant = last[last <= cutoff]
    if dormant.empty:
        return []

    shown = dormant.dt.strftime(date_format)
    if sort_by_display:
        key = pd.to_datetime(shown, format=DISPLAY_REPARSE_FORMAT, errors="coerce")
    else:
        key = dormant
    order = key.sort_values(kind="stable", na_position="last").index
    return [(email, shown[email]) for email in order]


def weekday_totals(rows: pd.DataFrame) -> List[Tuple[str, float]]:
    """Order totals per weekday, all seven days, best day first."""
    orders = first_rows(rows)
    dates = parse_dates(orders[COL_DATE])
    valid = dates.notna()
    if (~valid).any():
        logger.debug("%d orders without a readable date left out of weekday totals", int((~valid).sum()))
    amounts = to_number(orders[COL_TOTAL])[valid]
    by_day = amounts.groupby(dates[valid].dt.day_name()).sum()
    return _ranked(by_day.reindex(WEEKDAYS, fill_value=0.0))


def product_pairs(rows: pd.DataFrame, limit: int = TOP_N) -> List[Tuple[str, int]]:
    """Most frequent pairs of distinct items bought in the same order ("A | B", A < B)."""
    if rows.empty:
        return []
    tx_items = rows.groupby(COL_ORDER, sort=False)[COL_ITEM].apply(lambda s: tuple(sorted(set(s))))
    tx_items = tx_items.iloc[order_sequence(tx_items.index.to_series())]
    pair_counts = Counter()
    for items in tx_items:
        for a, b in combinations(items, 2):
            pair_counts[f"{a} | {b}"] += 1
    return pair_counts.most_common(limit)


def extract_eliquid_brand(name: str) -> Optional[str]:
    """Brand of an e-liquid line, UNKNOWN_BRAND if unreadable, None for other products."""
    if ELIQUID_MARKER not in name:
        return None
    m = _BRAND_RE.search(name)
    return m.group(1) if m else UNKNOWN_BRAND


def brand_quantities(
    rows: pd.DataFrame,
    classify: Callable[[str], Optional[str]] = extract_eliquid_brand,
) -> List[Tuple[str, float]]:
    if rows.empty:
        return []
    brands = rows[COL_ITEM].map(classify)
    keep = brands.notna()
    qty = to_number(rows.loc[keep, COL_QTY]).groupby(brands[keep], sort=False).sum()
    return _ranked(qty)


def monthly_sales(rows: pd.DataFrame) -> pd.DataFrame:
    """Sales, order count and average basket per calendar month."""
    orders = first_rows(rows)
    frame = pd.DataFrame({
        "Date": parse_dates(orders[COL_DATE]),
        "Total_Sale": to_number(orders[COL_TOTAL]),
    }).dropna(subset=["Date"])
    if frame.empty:
        return pd.DataFrame(columns=["Month", "Total_Sale", "Orders", "Average_Order_Value"])

    t = (frame.groupby(pd.Grouper(key="Date", freq="MS"))
              .agg(Total_Sale=("Total_Sale", "sum"),
                   Orders=("Total_Sale", "size"))
              .reset_index()
              .rename(columns={"Date": "Month"})
              .sort_values("Month"))
    t["Average_Order_Value"] = np.where(t["Orders"] > 0, t["Total_Sale"] / t["Orders"].replace(0, np.nan), 0.0)
    return t.reset_index(drop=True)
