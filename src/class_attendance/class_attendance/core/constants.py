"""Constants and defaults.

Note: Keep constants here to avoid magic values spread across code.
"""

DATE_FORMAT = "%Y-%m-%d"

# Reported instead of a count when a class has no records for the date.
NOT_APPLICABLE = "N/A"

# Bulk-delete wildcard for a class-key field.
ALL_WILDCARD = "All"

# Section value for year/branch-only cohorts.
NO_SECTION = "-"

VALID_YEARS = ("I", "II", "III", "IV")

ROLL_NO_SEARCH_LIMIT = 10

# Header-row values that leaked into the roster from old CSV uploads.
PLACEHOLDER_CLASS_VALUES = frozenset({"", "yearOfStudy", "branch", "section"})

DEFAULT_TOKEN_MAX_AGE_SECONDS = 12 * 60 * 60
