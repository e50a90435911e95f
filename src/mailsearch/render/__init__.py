"""Search result rendering."""

from .search import resolve_exclude, run_search, validate_options
from .window import RenderWindow

__all__ = ["RenderWindow", "resolve_exclude", "run_search", "validate_options"]
