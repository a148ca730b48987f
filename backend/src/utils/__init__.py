"""
Utility modules for the scheduling backend.

This package contains shared utility functions and helpers used across
the application, including datetime utilities, interval arithmetic and
database query helpers.
"""

from utils.interval_utils import overlaps, intervals_overlap

__all__ = ['overlaps', 'intervals_overlap']
