# Vapotank order dashboard
# - Loads the WooCommerce export once (data/orders.csv)
# - Sidebar: free-text search + date range, reset button
# - KPIs, Top products, Top customers, Dormant customers, Best weekdays,
#   Product pairs, E-liquid sales by brand, Monthly trend
# Run:
#     streamlit run vapotank_dashboard/app.py

import logging

import pandas as pd
import plotly.express as px
import plotly.io as pio
import streamlit as st

from vapotank_dashboard.config import (
    BRAND_CHART_TOP,
    DATA_PATH,
    DORMANT_DAYS,
    TOP_N,
    UNKNOWN_BRAND,
    WEEKDAY_CHART_TOP,
)
from vapotank_dashboard.loader import load_orders
from vapotank_dashboard.metrics import order_level_conflicts
from vapotank_dashboard.session import DashboardSession

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Page & Theme
# -----------------------------------------------------------------------------
st.set_page_config(
    page_title="Tableau de bord Vapotank",
    layout="wide",
    initial_sidebar_state="expanded"
)
pio.templates.default = "plotly_white"

st.markdown("""
<style>
.block-container { padding-top: 1.25rem; }
div[data-testid="stMetric"] { border:1px solid rgba(250,250,250,0.08); border-radius:12px; padding:8px; }
</style>
""", unsafe_allow_html=True)


@st.cache_data(show_spinner=False)
def cached_orders(path: str) -> pd.DataFrame:
    return load_orders(path)


def euros(value: float) -> str:
    return f"{value:,.2f} €"


# -----------------------------------------------------------------------------
# Session (rows loaded once, filters updated on every rerun)
# -----------------------------------------------------------------------------
if "session" not in st.session_state:
    st.session_state["session"] = DashboardSession(path=DATA_PATH)
session: DashboardSession = st.session_state["session"]

if not session.ready:
    with st.spinner("Chargement des données…"):
        session.load(loader=cached_orders)
if not session.ready:
    st.error(f"Impossible de charger les commandes. {session.error}")
    st.stop()


def reset_filters():
    st.session_state["f_search"] = ""
    st.session_state["f_from"] = None
    st.session_state["f_to"] = None
    session.reset_filters()


with st.sidebar:
    st.markdown("### Filtres")
    search = st.text_input("Recherche libre", key="f_search",
                           placeholder="email, produit, marque…",
                           help="Recherche dans toutes les colonnes de la ligne, sans tenir compte de la casse.")
    date_from = st.date_input("Du", value=None, key="f_from", format="DD/MM/YYYY")
    date_to = st.date_input("Au", value=None, key="f_to", format="DD/MM/YYYY")
    st.button("Réinitialiser", on_click=reset_filters)

session.set_filters(search=search, date_from=date_from, date_to=date_to)
res = session.results()

# -----------------------------------------------------------------------------
# Header & KPIs
# -----------------------------------------------------------------------------
st.markdown("## Tableau de bord Vapotank")
st.caption(f"{res.filtered_rows:,} lignes filtrées sur {len(session.rows):,}")

m = res.kpis
c1, c2, c3, c4 = st.columns(4)
c1.metric("CA total (filtré)", euros(m.total_sales))
c2.metric("Nombre de commandes", f"{m.total_orders:,}")
c3.metric("Panier moyen", euros(m.average_order_value))
c4.metric("Taux de repeat", f"{round(m.repeat_rate * 100)}%")
with st.expander("Définitions des indicateurs", expanded=False):
    st.markdown("""
- **CA total** : somme des montants de commande, comptés une fois par numéro de commande.
- **Panier moyen** : CA total ÷ nombre de commandes.
- **Taux de repeat** : clients ayant passé plus d’une commande ÷ nombre de commandes.
    """)

# -----------------------------------------------------------------------------
# Rankings
# -----------------------------------------------------------------------------
left, right = st.columns(2)
with left:
    st.markdown(f"### Top {TOP_N} Produits")
    st.dataframe(pd.DataFrame(list(res.top_products), columns=["Produit", "Quantité"]),
                 hide_index=True, use_container_width=True)

    st.markdown(f"### Clients inactifs (≥{DORMANT_DAYS} jours)")
    st.dataframe(pd.DataFrame(list(res.dormant_customers), columns=["Client (email)", "Dernière commande"]),
                 hide_index=True, use_container_width=True)

    st.markdown("### Paires de produits fréquentes")
    st.dataframe(pd.DataFrame(list(res.product_pairs), columns=["Paire", "Occurrences"]),
                 hide_index=True, use_container_width=True)

with right:
    st.markdown(f"### Top {TOP_N} Clients")
    st.dataframe(pd.DataFrame(list(res.top_customers), columns=["Client (email)", "CA (€)"]),
                 hide_index=True, use_container_width=True,
                 column_config={"CA (€)": st.column_config.NumberColumn("CA (€)", format="%.2f")})

    st.markdown("### Meilleurs jours de la semaine")
    days = pd.DataFrame(list(res.weekday_totals[:WEEKDAY_CHART_TOP]), columns=["day", "total"])
    fig = px.bar(days, x="day", y="total", text_auto=".2s")
    fig.update_layout(xaxis_title=None, yaxis_title="CA (€)", height=320)
    st.plotly_chart(fig, use_container_width=True)

    st.markdown("### Ventes e-liquides par marque")
    brands = pd.DataFrame(list(res.brand_quantities[:BRAND_CHART_TOP]), columns=["brand", "qty"])
    if brands.empty:
        st.info("Aucun e-liquide dans la sélection.")
    else:
        fig = px.pie(brands, values="qty", names="brand")
        fig.update_layout(height=340)
        st.plotly_chart(fig, use_container_width=True)

# -----------------------------------------------------------------------------
# Monthly trend
# -----------------------------------------------------------------------------
st.markdown("### Tendance mensuelle")
if res.monthly.empty:
    st.info("Aucune donnée pour les filtres sélectionnés.")
else:
    fig = px.line(res.monthly, x="Month", y="Total_Sale", markers=True,
                  hover_data={"Orders": ":,", "Average_Order_Value": ":.2f"})
    fig.update_layout(hovermode="x unified", xaxis_title=None, yaxis_title="CA (€)")
    st.plotly_chart(fig, use_container_width=True)

# -----------------------------------------------------------------------------
# Small data quality panel
# -----------------------------------------------------------------------------
with st.expander("Contrôle qualité des données", expanded=False):
    raw_df = session.rows
    st.caption(f"Lignes : **{len(raw_df):,}** | Source : **{session.path}**")
    issues = []
    conflicts = order_level_conflicts(raw_df)
    if conflicts:
        issues.append(f"{len(conflicts):,} commandes aux champs incohérents entre lignes")
    unknown = sum(q for b, q in res.brand_quantities if b == UNKNOWN_BRAND)
    if unknown:
        issues.append(f"{unknown:,.0f} e-liquides vendus sans marque lisible")
    if issues:
        st.warning(" | ".join(issues))
    else:
        st.success("Aucun problème évident détecté.")
