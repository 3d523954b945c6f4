from datetime import date, datetime

import pytest

from vapotank_dashboard.metrics import FilterCriteria, Kpis
from vapotank_dashboard.session import STATUS_EMPTY, STATUS_FAILED, STATUS_READY, DashboardSession


@pytest.fixture
def orders_csv(tmp_path, csv_header):
    p = tmp_path / "orders.csv"
    p.write_text(
        csv_header
        + '1,2024-01-01 09:00:00,ann@example.com,"50,00",Pod X,1\n'
        + '1,2024-01-01 09:00:00,ann@example.com,"50,00",E-liquide Acme Mint,1\n'
        + '\n'
        + '2,2024-01-08 17:30:00,ann@example.com,"30,00",Pod X,2\n'
        + '3,2024-03-15 12:00:00,bob@example.com,"12,50",E-liquide Nova Peche,4\n',
        encoding="utf-8",
    )
    return p


def test_new_session_is_empty():
    s = DashboardSession()
    assert s.status == STATUS_EMPTY
    assert not s.ready
    assert s.results().kpis == Kpis()


def test_load_and_results(orders_csv):
    s = DashboardSession()
    assert s.load(orders_csv)
    assert s.status == STATUS_READY and s.error is None
    assert len(s.rows) == 4

    res = s.results(now=datetime(2024, 12, 1))
    assert res.kpis.total_orders == 3
    assert res.kpis.total_sales == pytest.approx(92.5)
    assert res.top_products[:2] == (("E-liquide Nova Peche", 4.0), ("Pod X", 3.0))
    assert res.brand_quantities == (("Nova", 4.0), ("Acme", 1.0))
    assert [e for e, _ in res.dormant_customers] == ["ann@example.com", "bob@example.com"]
    assert res.weekday_totals[0] == ("Monday", 80.0)
    assert res.product_pairs == (("E-liquide Acme Mint | Pod X", 1),)
    assert len(res.monthly) == 3


def test_load_failure_is_reported(tmp_path):
    s = DashboardSession()
    assert not s.load(tmp_path / "missing.csv")
    assert s.status == STATUS_FAILED
    assert "missing.csv" in s.error
    assert s.rows.empty
    res = s.results()
    assert res.kpis == Kpis()
    assert res.top_products == () and res.product_pairs == ()


def test_reload_after_failure(tmp_path, orders_csv):
    s = DashboardSession()
    s.load(tmp_path / "missing.csv")
    assert s.load(orders_csv)
    assert s.ready and s.error is None


def test_custom_loader(example_rows):
    s = DashboardSession(path="memory")
    assert s.load(loader=lambda path: example_rows)
    assert s.results().kpis.total_sales == pytest.approx(80.0)


def test_filters_update_and_reset(orders_csv):
    s = DashboardSession()
    s.load(orders_csv)

    s.set_filters(search="bob")
    assert len(s.filtered()) == 1
    s.set_filters(date_from=date(2024, 1, 2))
    assert s.criteria == FilterCriteria(search="bob", date_from=date(2024, 1, 2))
    assert s.results().kpis.total_sales == pytest.approx(12.5)

    s.set_filters(search="", date_to=date(2024, 1, 8))
    assert s.results().kpis.total_orders == 1

    s.reset_filters()
    assert s.criteria.is_empty()
    assert len(s.filtered()) == len(s.rows)


def test_raw_rows_untouched_by_filtering(orders_csv):
    s = DashboardSession()
    s.load(orders_csv)
    before = s.rows.copy()
    s.set_filters(search="acme", date_to=date(2024, 1, 1))
    s.results()
    assert s.rows.equals(before)


def test_results_are_read_only(orders_csv):
    s = DashboardSession()
    s.load(orders_csv)
    res = s.results(now=datetime(2024, 12, 1))
    for ranking in (res.top_products, res.top_customers, res.dormant_customers,
                    res.weekday_totals, res.product_pairs, res.brand_quantities):
        assert isinstance(ranking, tuple)
        assert all(isinstance(entry, tuple) for entry in ranking)
    with pytest.raises(AttributeError):
        res.top_products = ()


def test_results_monthly_not_shared(orders_csv):
    s = DashboardSession()
    s.load(orders_csv)
    first = s.results()
    first.monthly.drop(first.monthly.index, inplace=True)
    assert len(s.results().monthly) == 3


def test_results_count_filtered_rows(orders_csv):
    s = DashboardSession()
    s.load(orders_csv)
    assert s.results().filtered_rows == 4
    s.set_filters(search="ann")
    assert s.results().filtered_rows == len(s.filtered()) == 3
