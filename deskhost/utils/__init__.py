"""Utility helpers for deskhost."""
