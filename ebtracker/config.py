import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

# Firebase Configuration
# Either a base64 encoded service account JSON, or the three discrete variables below
FIREBASE_SERVICE_ACCOUNT_KEY_BASE64 = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY_BASE64")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_CLIENT_EMAIL = os.getenv("FIREBASE_CLIENT_EMAIL")
FIREBASE_PRIVATE_KEY = os.getenv("FIREBASE_PRIVATE_KEY")
FIREBASE_STORAGE_BUCKET = os.getenv("FIREBASE_STORAGE_BUCKET")

# Cloudflare R2 Configuration (deliverables and proposal files)
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", FIREBASE_STORAGE_BUCKET or "eb-tracker")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "EB-Tracker <noreply@edanbrook.com>")
DASHBOARD_URL = os.getenv("DASHBOARD_URL", "https://edanbrook-tracker.web.app")

# Payments / invoices
# Days past the due date before a payment counts as overdue. Used by the
# overdue listing filter and by the daily sweep.
OVERDUE_THRESHOLD_DAYS = int(os.getenv("OVERDUE_THRESHOLD_DAYS", "15"))
INVOICE_REMINDER_WINDOW_DAYS = int(os.getenv("INVOICE_REMINDER_WINDOW_DAYS", "7"))

# Side-effect outbox
OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))

# Deliverable uploads
MAX_UPLOAD_FILES = int(os.getenv("MAX_UPLOAD_FILES", "20"))
MAX_UPLOAD_FILE_SIZE = int(os.getenv("MAX_UPLOAD_FILE_SIZE", str(100 * 1024 * 1024)))  # 100MB

# Background worker (arq)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"
