"""mailsearch - search a local mail index and render the results.

This package provides a small mail index/query engine and the search
renderer on top of it, with text, text0, JSON and S-expression output.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from mailsearch.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
