import os
from dotenv import load_dotenv
load_dotenv()


def _flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///onboarding.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "noreply@example.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Onboarding Team")
    RECRUITER_ALERT_EMAIL = os.getenv("RECRUITER_ALERT_EMAIL")
    # background check vendor (IBR)
    IBR_API_USERNAME = os.getenv("IBR_API_USERNAME")
    IBR_API_PASSWORD = os.getenv("IBR_API_PASSWORD")
    IBR_BASE_URL = os.getenv("IBR_BASE_URL", "https://ibrinc.com/webservices")
    IBR_MOCK_MODE = _flag("IBR_MOCK_MODE")
    IBR_TIMEOUT_SEC = float(os.getenv("IBR_TIMEOUT_SEC", "30"))
    IBR_ORDER_PACKAGE = os.getenv("IBR_ORDER_PACKAGE", "Package 2")
    BACKGROUND_CHECK_INTERVAL_SEC = int(os.getenv("BACKGROUND_CHECK_INTERVAL_SEC", "300"))
    BACKGROUND_CHECK_MONITOR_ENABLED = _flag("BACKGROUND_CHECK_MONITOR_ENABLED")
    # optional JSON file {"AGENT": ["2025-07-21", ...], "UNL": [...]}
    COHORT_CALENDAR_FILE = os.getenv("COHORT_CALENDAR_FILE")
