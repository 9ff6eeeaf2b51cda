"""Application settings read from the environment."""
from datetime import date, datetime
import os

import pytz
from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Calendar "today" is evaluated in this zone; completions are date-only
APP_TIMEZONE = pytz.timezone(os.environ.get("APP_TIMEZONE", "UTC"))

STATS_WINDOW_DAYS = int(os.environ.get("STATS_WINDOW_DAYS", "30"))
STREAK_LOOKBACK_DAYS = int(os.environ.get("STREAK_LOOKBACK_DAYS", "365"))
HISTORY_DAYS = int(os.environ.get("HISTORY_DAYS", "7"))

# Dapr sidecar used by the daily digest job
DAPR_HTTP_ENDPOINT = os.environ.get("DAPR_HTTP_ENDPOINT", "http://localhost:3500")
PUBSUB_NAME = os.environ.get("PUBSUB_NAME", "task-pubsub")
DIGEST_TOPIC = os.environ.get("DIGEST_TOPIC", "reminders")


def today() -> date:
    """Current calendar date in the application time zone."""
    return datetime.now(APP_TIMEZONE).date()
