# -----------------------------------------------------------------------------
# Dashboard settings
# -----------------------------------------------------------------------------
# WooCommerce export, dropped in data/ with its headers untouched.
DATA_PATH = "data/orders.csv"

# Column names as exported (French back office)
COL_ORDER = "Numéro de commande"
COL_EMAIL = "E-mail (Facturation)"
COL_TOTAL = "Montant total de la commande"
COL_ITEM = "Nom de l’élément"
COL_QTY = "Quantité (- Remboursement)"
COL_DATE = "Date de commande"

REQUIRED_COLUMNS = [COL_ORDER, COL_EMAIL, COL_TOTAL, COL_ITEM, COL_QTY, COL_DATE]

TOP_N = 20
DORMANT_DAYS = 120

# E-liquid brand extraction
ELIQUID_MARKER = "E-liquide"
ELIQUID_BRAND_PATTERN = r"E-liquide\s+([A-Za-z0-9\-']+)"
UNKNOWN_BRAND = "?"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Dates: parsed month-first unless told otherwise; shown as fr-FR short dates
DAYFIRST = False
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
# Dormant list is ordered by the displayed date read back month-first
DISPLAY_REPARSE_FORMAT = "%m/%d/%Y"

# Chart slices
WEEKDAY_CHART_TOP = 3
BRAND_CHART_TOP = 10
