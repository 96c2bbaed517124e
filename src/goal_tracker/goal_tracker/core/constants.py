"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CATEGORY = "OKR"
DEFAULT_WEIGHT = 1.0
PROGRESS_DECIMALS = 2
MAX_PROGRESS = 100.0

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_HIERARCHY_MAX_DEPTH = 50

# Column bounds: values are DECIMAL(15,4), weights DECIMAL(10,4).
MAX_ABS_VALUE = 1e11
MAX_WEIGHT = 1e6
