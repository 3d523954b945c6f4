"""Vapotank order dashboard: KPIs and rankings from a WooCommerce order export."""

__version__ = "0.1.0"
