"""OnPoint offline sync package.

Organized by feature modules (timeclock, adjustments, leave, expenses, ...)
around a local durable store, a remote API client and a reconciliation
engine, with a thin Flask controller layer on top.
"""
