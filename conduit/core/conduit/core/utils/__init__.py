"""
Utility functions for the Conduit core package.

This module provides small argument checks and path helpers shared across Conduit components.
"""

from .checks import check_not_empty, check_not_none, first_not_none, ifnone
from .paths import expand_tilde_str

__all__ = [
    "check_not_empty",
    "check_not_none",
    "expand_tilde_str",
    "first_not_none",
    "ifnone",
]
