"""Application-wide constants for the CoachHub platform."""

from __future__ import annotations

BRAND_NAME = "CoachHub"

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Coaching marketplace: coaches, courses, sessions, payments and credits"
API_VERSION = "1.0.0"
API_V1_PREFIX = "/api/v1"

# Authentication
MAX_LOGIN_ATTEMPTS = 5
ACCOUNT_LOCK_MINUTES = 30
VERIFICATION_TOKEN_HOURS = 24
RESET_TOKEN_HOURS = 1
MIN_PASSWORD_LENGTH = 8

# Sessions
SESSION_START_WINDOW_MINUTES = 5
MIN_SESSION_DURATION = 15  # minutes
MAX_SESSION_DURATION = 480  # minutes (8 hours)
MAX_BULK_SESSIONS = 50
DEFAULT_SLOT_DURATION = 60  # minutes
MEETING_URL_BASE = "https://meet.google.com"

# Children
MAX_CHILD_AGE_YEARS = 18

# Query limits
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Reviews
MIN_RATING = 1
MAX_RATING = 5

# Day of week mapping (datetime.weekday() order)
DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Stripe amounts are expressed in the smallest currency unit
CENTS_PER_UNIT = 100

# Metrics endpoint excluded from HTTP metrics
METRICS_PATH = "/metrics/prometheus"
