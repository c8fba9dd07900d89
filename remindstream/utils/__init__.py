# File: utils/__init__.py
"""Pure Python utilities for RemindStream.

Submodules:
    - dt_utils: Date/time parsing, timezone handling, calendar arithmetic

Usage:
    from .utils import dt_utils
    from .utils.dt_utils import as_utc
"""

from . import dt_utils

__all__ = ["dt_utils"]
