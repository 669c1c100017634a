"""
Unit tests for the configuration loader.
Covers required fields, defaults, derived values and violation reporting.
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from esg_platform.core.config import (
    ConfigurationError,
    ConfigurationValidationError,
    load,
    load_from_environment,
    read_environment,
)
from conftest import REQUIRED_FIELDS


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_required_field_is_reported(environ, field):
    """Omitting any required variable fails and names it."""
    del environ[field]

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert f"{field} is required" in exc_info.value.errors
    assert field in str(exc_info.value)


@pytest.mark.parametrize("field", ["DB_PASSWORD", "JWT_SECRET", "SESSION_SECRET", "AWS_S3_BUCKET"])
def test_empty_required_field_is_rejected(environ, field):
    environ[field] = ""

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == [f"{field} must not be empty"]


def test_defaults_for_optional_fields(config):
    assert config.port == 3000
    assert config.database.port == 5432
    assert config.database.ssl is False
    assert config.database.pool.min == 2
    assert config.database.pool.max == 10
    assert config.redis.host == "localhost"
    assert config.redis.port == 6379
    assert config.redis.password is None
    assert config.jwt.expires_in == timedelta(days=7)
    assert config.jwt.refresh_expires_in == timedelta(days=30)
    assert config.email.smtp.port == 587
    assert config.email.sender.name == "ESG Compliance Platform"
    assert config.aws.region == "eu-central-1"
    assert config.sentry.dsn is None
    assert config.api.openai_key is None
    assert config.rate_limit.window_ms == 15 * 60 * 1000
    assert config.rate_limit.window == timedelta(minutes=15)
    assert config.rate_limit.max_requests == 100
    assert config.utility_providers.tauron.api_url is None
    assert config.logging.level == "info"


def test_environment_defaults_to_development(config):
    assert config.environment == "development"
    assert config.is_development is True
    assert config.is_production is False
    assert config.is_test is False


def test_production_flags_and_cookie_policy(environ):
    environ["NODE_ENV"] = "production"

    config = load(environ)

    assert config.is_production is True
    assert config.is_development is False
    assert config.session.cookie.secure is True
    assert config.session.cookie.http_only is True
    assert config.session.cookie.same_site == "lax"
    assert config.session.cookie.max_age == timedelta(days=7)


def test_cookie_not_secure_outside_production(config):
    assert config.session.cookie.secure is False


def test_origins_are_split_and_trimmed(environ):
    environ["FRONTEND_URL"] = "https://a.test, https://b.test"

    config = load(environ)

    assert list(config.cors.origins) == ["https://a.test", "https://b.test"]


def test_origins_require_at_least_one_entry(environ):
    environ["FRONTEND_URL"] = " , "

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == ["FRONTEND_URL: must contain at least one origin"]


@pytest.mark.parametrize("port, secure", [
    ("465", True),
    ("587", False),
    ("25", False),
    ("2525", False),
])
def test_smtp_secure_flag_follows_port(environ, port, secure):
    environ["SMTP_PORT"] = port

    config = load(environ)

    assert config.email.smtp.port == int(port)
    assert config.email.smtp.secure is secure


def test_enum_outside_closed_set_lists_allowed_values(environ):
    environ["LOG_LEVEL"] = "verbose"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == [
        "LOG_LEVEL must be one of [error, warn, info, debug], got 'verbose'"
    ]


def test_unknown_environment_name_is_rejected(environ):
    environ["NODE_ENV"] = "qa"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == [
        "NODE_ENV must be one of [development, production, test, staging], got 'qa'"
    ]


def test_numeric_fields_must_parse(environ):
    environ["PORT"] = "eighty"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert len(exc_info.value.errors) == 1
    assert exc_info.value.errors[0].startswith("PORT: ")


def test_port_range_is_enforced(environ):
    environ["DB_PORT"] = "70000"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors[0].startswith("DB_PORT: ")


def test_rate_limit_must_be_positive(environ):
    environ["RATE_LIMIT_MAX_REQUESTS"] = "0"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors[0].startswith("RATE_LIMIT_MAX_REQUESTS: ")


def test_sender_email_must_be_valid(environ):
    environ["SMTP_FROM_EMAIL"] = "not-an-email"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors[0].startswith("SMTP_FROM_EMAIL: ")


def test_all_violations_are_collected(environ):
    """Every problem is reported in one pass, not just the first."""
    del environ["DB_HOST"]
    del environ["SESSION_SECRET"]
    environ["PORT"] = "abc"
    environ["LOG_LEVEL"] = "verbose"
    environ["JWT_EXPIRES_IN"] = "forever"

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    errors = exc_info.value.errors
    assert len(errors) == 5
    assert "DB_HOST is required" in errors
    assert "SESSION_SECRET is required" in errors
    assert any(error.startswith("PORT: ") for error in errors)
    assert any(error.startswith("LOG_LEVEL ") for error in errors)
    assert any(error.startswith("JWT_EXPIRES_IN: invalid duration") for error in errors)


def test_validation_error_is_a_configuration_error(environ):
    del environ["DB_NAME"]

    with pytest.raises(ConfigurationError):
        load(environ)


def test_unknown_variables_are_ignored(environ):
    environ["SOME_UNRELATED_VARIABLE"] = "whatever"
    environ["PATH"] = "/usr/bin"

    config = load(environ)

    assert not hasattr(config, "SOME_UNRELATED_VARIABLE")


def test_typed_coercion(environ):
    environ.update({
        "PORT": "8080",
        "DB_SSL": "true",
        "JWT_EXPIRES_IN": "15m",
        "JWT_REFRESH_EXPIRES_IN": "12h",
        "REDIS_PASSWORD": "",
        "SENTRY_DSN": "https://key@sentry.esg-platform.pl/1",
        "TAURON_API_URL": "https://api.tauron.pl",
        "TAURON_API_KEY": "tauron-key",
    })

    config = load(environ)

    assert config.port == 8080
    assert config.database.ssl is True
    assert config.jwt.expires_in == timedelta(minutes=15)
    assert config.jwt.refresh_expires_in == timedelta(hours=12)
    assert config.redis.password is None
    assert config.sentry.dsn == "https://key@sentry.esg-platform.pl/1"
    assert config.utility_providers.tauron.api_url == "https://api.tauron.pl"
    assert config.utility_providers.tauron.api_key == "tauron-key"


def test_load_is_idempotent(environ):
    assert load(environ) == load(environ)


def test_record_is_immutable(config):
    with pytest.raises(ValidationError):
        config.port = 9999

    with pytest.raises(ValidationError):
        config.database.host = "elsewhere"


def test_business_rules_are_fixed(config):
    plans = config.business.subscription_plans

    assert config.business.trial_duration_days == 14
    assert plans.tiers() == ["basic", "professional", "enterprise"]
    assert plans.get("basic").max_users == 5
    assert plans.get("enterprise").max_reports_per_month == -1
    assert plans.get("platinum") is None
    assert config.locale.currency == "PLN"
    assert config.locale.vat_rate == 0.23


def test_summary_masks_secrets(config):
    summary = config.summary()

    assert "db-password-1234" not in summary["database"]
    assert summary["database"].endswith("@db.internal:5432/esg")
    assert summary["aws_access_key_id"] == "**************1234"
    assert summary["cors_origins"] == ["https://app.esg-platform.pl"]
    assert "access-secret-abcdef" not in str(summary)


def test_read_environment_prefers_process_values(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("DB_HOST=from-file\nDB_NAME=file-db\n")
    monkeypatch.setenv("DB_HOST", "from-process")
    monkeypatch.delenv("DB_NAME", raising=False)

    values = read_environment(str(env_file))

    assert values["DB_HOST"] == "from-process"
    assert values["DB_NAME"] == "file-db"


def test_read_environment_without_file(tmp_path, monkeypatch):
    monkeypatch.setenv("DB_HOST", "from-process")

    values = read_environment(str(tmp_path / "missing.env"))

    assert values["DB_HOST"] == "from-process"


def test_load_from_environment(tmp_path, monkeypatch, environ):
    env_file = tmp_path / ".env"
    env_file.write_text("".join(f"{key}={value}\n" for key, value in environ.items()))
    for key in environ:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.delenv("NODE_ENV", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = load_from_environment(str(env_file))

    assert config.port == 4000
    assert config.database.host == "db.internal"


@pytest.mark.parametrize("field", ["JWT_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN"])
def test_oversized_duration_is_a_validation_error(environ, field):
    environ[field] = "99999999999d"
    del environ["DB_HOST"]

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == [
        "DB_HOST is required",
        f"{field}: duration '99999999999d' is out of range",
    ]


@pytest.mark.parametrize("raw, expected", [("true", True), ("false", False), ("TRUE", True), ("False", False)])
def test_db_ssl_accepts_true_and_false(environ, raw, expected):
    environ["DB_SSL"] = raw

    assert load(environ).database.ssl is expected


@pytest.mark.parametrize("raw", ["1", "yes", "on", "y", ""])
def test_db_ssl_rejects_other_spellings(environ, raw):
    environ["DB_SSL"] = raw

    with pytest.raises(ConfigurationValidationError) as exc_info:
        load(environ)

    assert exc_info.value.errors == ["DB_SSL: must be true or false"]
