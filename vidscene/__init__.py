"""Scene grouping and compression planning for video pipelines."""

__version__ = '0.1.0'
