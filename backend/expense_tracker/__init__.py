"""Expense tracking backend: category trees, expenses and currency-aware reports."""

__version__ = "0.1.0"
