"""Typer command-line interface (``vnext-sync``)."""
