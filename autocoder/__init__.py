"""Autocoder - an autonomous coding agent driven by test feedback."""

__version__ = "0.1.0"

from autocoder.config import Config
from autocoder.main import main

__all__ = ["Config", "main", "__version__"]
