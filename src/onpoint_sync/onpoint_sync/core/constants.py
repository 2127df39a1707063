"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

REQUIRED_DAILY_MINUTES = 480
ACCEPTED_MIN_MINUTES = 470
ACCEPTED_MAX_MINUTES = 490

MAX_LEAVE_DAYS = 30
ANNUAL_LEAVE_MIN_MONTHS = 12
AVERAGE_DAYS_PER_MONTH = 30.44

DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_CACHE_MAX_AGE_HOURS = 24
DEFAULT_MAX_QUEUE_RETRIES = 5

GEOLOCATION_TIMEOUT_SECONDS = 5
GEOLOCATION_INNER_TIMEOUT_SECONDS = 10

PROVISIONAL_ID_PREFIX = "temp-"
LOCATION_UNAVAILABLE = "Location unavailable"

NOTICE_CACHED = "Offline - showing cached data"
NOTICE_NO_CACHE = "Offline - no cached data available. Connect to the internet and load data first."
