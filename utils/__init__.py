"""
Utility modules for the report engine.
"""

from .formatting import format_area, format_currency, format_number, format_percent
from .config import Config

__all__ = ["format_area", "format_currency", "format_number", "format_percent", "Config"]
