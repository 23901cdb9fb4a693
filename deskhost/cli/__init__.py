"""CLI module for deskhost."""
