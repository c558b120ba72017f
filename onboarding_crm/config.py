import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Local development falls back to a SQLite file next to the project
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./onboarding_crm.db")

# Public base URL of this service (used when registering webhooks)
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]

# Slack Configuration
SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN")
SLACK_SIGNING_SECRET = os.getenv("SLACK_SIGNING_SECRET")
# Channel where new applications are announced and threaded
APPLICATION_SLACK_CHANNEL_ID = os.getenv("APPLICATION_SLACK_CHANNEL_ID")
# Channel where purchase threads are created for new orders
PURCHASE_SLACK_CHANNEL_ID = os.getenv("PURCHASE_SLACK_CHANNEL_ID")
# Staff member mentioned on call bookings / joins (e.g. U01234567)
STAFF_SLACK_MEMBER_ID = os.getenv("STAFF_SLACK_MEMBER_ID")

# Typeform Configuration
TYPEFORM_WEBHOOK_SECRET = os.getenv("TYPEFORM_WEBHOOK_SECRET")
TYPEFORM_TOKEN = os.getenv("TYPEFORM_TOKEN")
TYPEFORM_FORM_ID = os.getenv("TYPEFORM_FORM_ID")

# Calendly webhook subscription signing key
CALENDLY_WEBHOOK_SIGNING_KEY = os.getenv("CALENDLY_WEBHOOK_SIGNING_KEY")

# Wasender (WhatsApp) Configuration
WASENDER_WEBHOOK_SECRET = os.getenv("WASENDER_WEBHOOK_SECRET")
# Comma separated group JIDs; empty means every group counts as a join
WASENDER_ALLOWED_GROUP_JIDS = os.getenv("WASENDER_ALLOWED_GROUP_JIDS", "")

# SamCart Configuration
SAMCART_WEBHOOK_SECRET = os.getenv("SAMCART_WEBHOOK_SECRET")

# Shared secret sent by the cron runner in X-Cron-Secret
CRON_SECRET = os.getenv("CRON_SECRET")
