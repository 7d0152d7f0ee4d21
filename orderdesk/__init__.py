"""
                OrderDesk Restaurant Platform

Backend for a restaurant ordering web app and its admin dashboard:
customer checkout, admin order handling with an explicit status
state machine, JWT access control, per-identity rate limiting and
dashboard reporting.
"""

__version__ = "1.0.0"
