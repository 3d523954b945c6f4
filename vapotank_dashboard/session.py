import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

import pandas as pd

from vapotank_dashboard.config import DATA_PATH
from vapotank_dashboard.loader import OrdersLoadError, empty_orders, load_orders
from vapotank_dashboard.metrics import (
    FilterCriteria,
    Kpis,
    apply_filters,
    brand_quantities,
    compute_kpis,
    dormant_customers,
    monthly_sales,
    order_level_conflicts,
    product_pairs,
    top_customers,
    top_products,
    weekday_totals,
)

logger = logging.getLogger(__name__)

STATUS_EMPTY = "empty"
STATUS_READY = "ready"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class DashboardResults:
    filtered_rows: int
    kpis: Kpis
    top_products: Tuple[Tuple[str, float], ...]
    top_customers: Tuple[Tuple[str, float], ...]
    dormant_customers: Tuple[Tuple[str, str], ...]
    weekday_totals: Tuple[Tuple[str, float], ...]
    product_pairs: Tuple[Tuple[str, int], ...]
    brand_quantities: Tuple[Tuple[str, float], ...]
    # rebuilt on every call, never shared between results
    monthly: pd.DataFrame


@dataclass
class DashboardSession:
    """Raw rows loaded once, current filter, and everything derived from the two."""

    path: str = DATA_PATH
    rows: pd.DataFrame = field(default_factory=empty_orders)
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    status: str = STATUS_EMPTY
    error: Optional[str] = None

    def load(self, path=None, loader: Callable[..., pd.DataFrame] = load_orders) -> bool:
        """Load the export; on failure keep empty rows and record why."""
        if path is not None:
            self.path = str(path)
        try:
            rows = loader(self.path)
        except OrdersLoadError as e:
            self.rows, self.status, self.error = empty_orders(), STATUS_FAILED, str(e)
            return False

        conflicts = order_level_conflicts(rows)
        if conflicts:
            logger.warning("%d orders have rows disagreeing on total/date/email, first row wins: %s",
                           len(conflicts), conflicts[:10])
        self.rows, self.status, self.error = rows, STATUS_READY, None
        return True

    @property
    def ready(self) -> bool:
        return self.status == STATUS_READY

    def set_filters(self, **changes) -> FilterCriteria:
        self.criteria = dataclasses.replace(self.criteria, **changes)
        return self.criteria

    def reset_filters(self) -> FilterCriteria:
        self.criteria = FilterCriteria()
        return self.criteria

    def filtered(self) -> pd.DataFrame:
        return apply_filters(self.rows, self.criteria)

    def results(self, now=None) -> DashboardResults:
        data = self.filtered()
        return DashboardResults(
            filtered_rows=len(data),
            kpis=compute_kpis(data),
            top_products=tuple(top_products(data)),
            top_customers=tuple(top_customers(data)),
            dormant_customers=tuple(dormant_customers(data, now=now)),
            weekday_totals=tuple(weekday_totals(data)),
            product_pairs=tuple(product_pairs(data)),
            brand_quantities=tuple(brand_quantities(data)),
            monthly=monthly_sales(data),
        )
