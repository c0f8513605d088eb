"""Execution records, payload builders and confirmation checks."""
