"""
revsched - Billing schedule normalization and reconciliation engine.

Turns noisy, semi-structured billing schedules produced by a document
extraction service into canonical, policy-compliant schedules and
projects them into the downstream billing (Garage) schema.
"""

__version__ = "0.1.0"
__app_name__ = "revsched"
