"""
Watcher package: tracked resource model, fetching, content normalization
and persistence of the tracked resource list.
"""

__version__ = "1.0.0"
