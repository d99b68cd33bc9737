"""Shared helpers."""

from .dates import start_of_month, end_of_month, add_months, add_weeks, month_key, to_naive_local

__all__ = ["start_of_month", "end_of_month", "add_months", "add_weeks", "month_key", "to_naive_local"]
