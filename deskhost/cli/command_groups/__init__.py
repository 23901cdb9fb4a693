"""Typer command groups."""
