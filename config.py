"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Public links (share URLs in emails)
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', 'http://localhost:5000')

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'quoteflow')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'quoteflow')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'quoteflow')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'

    # Quotes / invoices business rules
    QUOTE_VALID_DAYS = int(os.getenv('QUOTE_VALID_DAYS', '30'))
    INVOICE_DUE_DAYS = int(os.getenv('INVOICE_DUE_DAYS', '30'))
    QUOTE_NUMBER_PREFIX = os.getenv('QUOTE_NUMBER_PREFIX', 'Q')
    INVOICE_NUMBER_PREFIX = os.getenv('INVOICE_NUMBER_PREFIX', 'INV')
    RECENT_DRAFTS_LIMIT = int(os.getenv('RECENT_DRAFTS_LIMIT', '5'))

    # Follow-up scheduler (external HTTP functions)
    FOLLOWUPS_SCHEDULER_URL = os.getenv('FOLLOWUPS_SCHEDULER_URL')
    INVOICE_FOLLOWUPS_SCHEDULER_URL = os.getenv('INVOICE_FOLLOWUPS_SCHEDULER_URL')
    FOLLOWUPS_SCHEDULER_TOKEN = os.getenv('FOLLOWUPS_SCHEDULER_TOKEN')
    FOLLOWUPS_SCHEDULER_TIMEOUT = int(os.getenv('FOLLOWUPS_SCHEDULER_TIMEOUT', '10'))

    # Email configuration
    MAIL_SERVER = os.getenv('SMTP_HOST', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('SMTP_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USE_SSL = False
    MAIL_USERNAME = os.getenv('SMTP_USER') or ''
    MAIL_PASSWORD = os.getenv('SMTP_PASSWORD') or ''
    MAIL_DEFAULT_SENDER = (
        os.getenv('SMTP_FROM')
        or MAIL_USERNAME
        or 'no-reply@localhost'
    )
    MAIL_DEBUG = False
    MAIL_SUPPRESS_SEND = os.getenv('MAIL_SUPPRESS_SEND', 'false').lower() == 'true'


class TestConfig(Config):
    """Configuration used by the test suite (SQLite in memory, no outbound I/O)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    MAIL_SUPPRESS_SEND = True
    FOLLOWUPS_SCHEDULER_URL = None
    INVOICE_FOLLOWUPS_SCHEDULER_URL = None
