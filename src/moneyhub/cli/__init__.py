"""Command-line interface for MoneyHub."""

from .main import app, main

__all__ = ["app", "main"]
