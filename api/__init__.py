"""
HTTP control surface for PageWatch.
"""

__version__ = "1.0.0"
