"""
comexdata_shared — shared configuration, models and period utilities.

Usage:
    from comexdata_shared.config import settings
    from comexdata_shared.models.trade import SummaryPeriod, TradeFlow, Period
    from comexdata_shared.time_utils import resolve_period
"""

__version__ = "0.1.0"
