import pandas as pd
import pytest

from vapotank_dashboard.config import COL_DATE, COL_EMAIL, COL_ITEM, COL_ORDER, COL_QTY, COL_TOTAL

CSV_HEADER = "Numéro de commande,Date de commande,E-mail (Facturation),Montant total de la commande,Nom de l’élément,Quantité (- Remboursement)\n"


def make_rows(records):
    """(order, email, total, item, qty, date) tuples -> raw string frame."""
    cols = [COL_ORDER, COL_EMAIL, COL_TOTAL, COL_ITEM, COL_QTY, COL_DATE]
    return pd.DataFrame([[str(v) for v in r] for r in records], columns=cols)


@pytest.fixture
def example_rows():
    return make_rows([
        ("1", "ann@example.com", "50,00", "Pod X", "1", "2024-01-01"),
        ("1", "ann@example.com", "50,00", "E-liquide Acme Mint", "1", "2024-01-01"),
        ("2", "ann@example.com", "30,00", "Pod X", "2", "2024-01-08"),
    ])


@pytest.fixture
def shop_rows():
    return make_rows([
        ("10", "claire@example.fr", "42,90", "Pod Xros", "1", "2024-01-05 10:12:44"),
        ("10", "claire@example.fr", "42,90", "E-liquide Fuu Menthe", "2", "2024-01-05 10:12:44"),
        ("11", "julien@example.fr", "19,80", "E-liquide Alfaliquid Fraise", "3", "2024-01-06 18:03:10"),
        ("12", "claire@example.fr", "27,50", "Résistances Xros", "1", "2024-02-11 09:47:02"),
        ("12", "claire@example.fr", "27,50", "E-liquide Fuu Menthe", "1", "2024-02-11 09:47:02"),
        ("13", "sophie@example.fr", "64,00", "Pod Xros", "1", "2024-03-02 14:25:33"),
        ("13", "sophie@example.fr", "64,00", "Résistances Xros", "2", "2024-03-02 14:25:33"),
        ("14", "marc@example.fr", "12,00", "Cordon USB-C", "1", "pas une date"),
    ])


@pytest.fixture
def csv_header():
    return CSV_HEADER


@pytest.fixture
def rows_from():
    return make_rows
