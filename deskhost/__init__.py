"""deskhost - plugin runtime and command registry for a local dev-tooling GUI backend."""

__version__ = "0.1.0"
