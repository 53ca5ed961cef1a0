"""Parsing, deduplication, event counting, key handling and record/replay of Kubernetes watch results."""

__version__ = "0.1.0"