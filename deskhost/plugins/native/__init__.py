"""Filesystem-backed plugin module loading."""

from .loader import FilesystemModuleLoader, module_entry

__all__ = ["FilesystemModuleLoader", "module_entry"]
