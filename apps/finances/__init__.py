"""Finances app package.

This app contains the append-only ledger, invoices, payment receipts and
accounting periods. Balances of a booking are always derived from the
ledger; invoice and payment rows are kept in step with it.
"""
