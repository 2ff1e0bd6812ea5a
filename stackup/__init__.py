"""Local development stack bootstrapper with service readiness orchestration."""

__version__ = "0.1.0"
