"""
Utility modules for the scheduling backend.

This package contains pure helpers shared across the application: the
half-open time-range algebra and practice-local datetime utilities.
"""

from utils.time_ranges import TimeRange

__all__ = ['TimeRange']
