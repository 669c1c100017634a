import pytest

from esg_platform.core.config import load

BASE_ENVIRONMENT = {
    "DB_HOST": "db.internal",
    "DB_NAME": "esg",
    "DB_USER": "esg_app",
    "DB_PASSWORD": "db-password-1234",
    "JWT_SECRET": "access-secret-abcdef",
    "JWT_REFRESH_SECRET": "refresh-secret-ghijkl",
    "SMTP_HOST": "smtp.esg-platform.pl",
    "SMTP_USER": "mailer",
    "SMTP_PASSWORD": "smtp-password",
    "SMTP_FROM_EMAIL": "noreply@esg-platform.pl",
    "AWS_ACCESS_KEY_ID": "AKIAEXAMPLEKEY1234",
    "AWS_SECRET_ACCESS_KEY": "aws-secret-key",
    "AWS_S3_BUCKET": "esg-reports",
    "FRONTEND_URL": "https://app.esg-platform.pl",
    "SESSION_SECRET": "session-secret",
}

REQUIRED_FIELDS = sorted(BASE_ENVIRONMENT)


@pytest.fixture
def environ():
    """A fresh copy of a minimal valid environment."""
    return dict(BASE_ENVIRONMENT)


@pytest.fixture
def config(environ):
    return load(environ)
