"""Utility functions for spec graphs."""

from specgraph.utils.timestamps import utc_timestamp
from specgraph.utils.step_keys import natural_sort_key, numeric_key

__all__ = [
    "natural_sort_key",
    "numeric_key",
    "utc_timestamp",
]
