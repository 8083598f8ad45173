import os
from dotenv import load_dotenv
load_dotenv()


def _int(name, default):
    return int(os.getenv(name, default))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///guestportal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    APP_URL = os.getenv("APP_URL", "http://localhost:5000")

    # mail transport
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "sendgrid")
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "noreply@saele.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Saele")
    MAIL_TIMEOUT_SECONDS = _int("MAIL_TIMEOUT_SECONDS", 10)

    # notification queue
    NOTIFICATION_BATCH_SIZE = _int("NOTIFICATION_BATCH_SIZE", 10)
    NOTIFICATION_MAX_ATTEMPTS = _int("NOTIFICATION_MAX_ATTEMPTS", 5)
    NOTIFICATION_RETRY_BASE_SECONDS = _int("NOTIFICATION_RETRY_BASE_SECONDS", 60)
    NOTIFICATION_MAX_WORKERS = _int("NOTIFICATION_MAX_WORKERS", 4)
    CRON_SECRET = os.getenv("CRON_SECRET")

    # auth
    MAGIC_LINK_TTL_MINUTES = _int("MAGIC_LINK_TTL_MINUTES", 24 * 60)
    ADMIN_EMAILS = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

    # avatar storage
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
    LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "./storage")
    S3_ENDPOINT = os.getenv("S3_ENDPOINT")
    S3_REGION = os.getenv("S3_REGION")
    S3_BUCKET = os.getenv("S3_BUCKET")
    S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY")
    S3_SECRET_KEY = os.getenv("S3_SECRET_KEY")
    S3_PUBLIC_URL = os.getenv("S3_PUBLIC_URL")

    # dashboard
    WEATHER_LATITUDE = float(os.getenv("WEATHER_LATITUDE", "47.38534"))
    WEATHER_LONGITUDE = float(os.getenv("WEATHER_LONGITUDE", "9.90231"))
    WEATHER_LOCATION = os.getenv("WEATHER_LOCATION", "Bezau, Vorarlberg, Austria")
    WEATHER_TIMEZONE = os.getenv("WEATHER_TIMEZONE", "Europe/Vienna")
    WEATHER_CACHE_TTL_SECONDS = _int("WEATHER_CACHE_TTL_SECONDS", 15 * 60)
    INSTAGRAM_USERNAME = os.getenv("INSTAGRAM_USERNAME", "appartementschristine")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    APP_URL = "http://localhost"
    MAIL_BACKEND = "console"
    SENDGRID_API_KEY = None
    CRON_SECRET = "test-cron-secret"
    ADMIN_EMAILS = ["admin@example.com"]
    NOTIFICATION_MAX_WORKERS = 2
