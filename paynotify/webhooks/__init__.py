"""Midtrans payment notification webhook.

Receives HTTP notifications from Midtrans. Each notification is
signature-verified, classified by transaction status, and applied to the
payments and quiz_results tables.
"""
