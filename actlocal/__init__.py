"""Executors, an artifact server, git helpers, plan reports and run configuration for local CI jobs."""

__version__ = "0.1.0"