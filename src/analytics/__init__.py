"""
Sales Analytics Module
"""
from .aggregator import PeriodBucket, PeriodKey, SalesSeries, aggregate_sales, period_key, week_number
from .overview import ChartPayload, ChartState, SalesOverview, build_chart

__all__ = [
    "ChartPayload",
    "ChartState",
    "PeriodBucket",
    "PeriodKey",
    "SalesOverview",
    "SalesSeries",
    "aggregate_sales",
    "build_chart",
    "period_key",
    "week_number",
]
