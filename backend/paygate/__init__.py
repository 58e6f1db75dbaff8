"""Paygate — Safepay checkout sessions and payment status reconciliation."""
