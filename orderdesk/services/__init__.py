"""
                        Services Module

Business rules for each area of the platform. Every async service function
takes an ``AsyncSession`` as its first argument; the API layer only
translates HTTP into these calls.

Services:
    - accounts: Admin and customer registration, login, profiles
    - menu: Catalog management
    - orders: Checkout, status workflow, listing
    - rate_limiter: Per-identity sliding window limits
    - reporting: Dashboard aggregates
    - excel_manager: Process-safe Excel order ledger
"""

from orderdesk.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
