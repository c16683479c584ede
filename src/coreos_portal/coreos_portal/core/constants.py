"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_LIST_LIMIT = 200
DEFAULT_ADMIN_LIST_LIMIT = 500

# PTO
MIN_REQUEST_DAYS = 0.5
SELF_CANCEL_NOTICE_HOURS = 24
TRANSACTION_NUMBER_WIDTH = 6

# Container expander
DEFAULT_MAX_UPLOAD_MB = 10
DEFAULT_UPLOAD_TTL_HOURS = 24
PREVIEW_ROWS = 10
EXPANDER_STOP_WORDS = frozenset({"stop", "remaining parts in previous order:"})
MAX_CONTAINER_RANGE = 10_000
MAX_EXPANDED_ROWS = 200_000
EXPANDER_EXPORT_HEADERS = ("Carton #", "Part #", "PCS Per Carton")

# Parts catalog
PARTS_PER_PAGE = 12
PARTS_MIN_PER_PAGE = 5
PARTS_MAX_PER_PAGE = 100
PARTS_SERIAL_OPTIONS_LIMIT = 250
PARTS_SEARCH_MAX_LENGTH = 255
PARTS_TEXT_MAX_LENGTH = 100
PARTS_MAX_LOG_LINES = 50
PARTS_FILE_CONTEXT_LENGTH = 150
PARTS_FIELD_NAME_LENGTH = 255
