"""Multi-cluster fleet reconciliation: repository vs cluster hub vs AWS."""

__version__ = "1.0.0"
