"""
DiffChecker: comparison and validation engine for JSON, XML and text.
"""

__version__ = "1.0.0"
