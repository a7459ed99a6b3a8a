"""Domain business rules and constants."""

from typing import Final

# Relation rendering defaults
DEFAULT_RELATION_LIMIT: Final = 15
DEFAULT_PER_PAGE: Final = 15
RAW_VALUE_SEPARATOR: Final = ";"

# Field constraints
MAX_TEXT_LENGTH: Final = 255
