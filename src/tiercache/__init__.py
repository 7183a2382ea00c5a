"""tiercache: tiered local/Redis/edge cache for the threat-analysis dashboard."""

__version__ = "0.1.0"
