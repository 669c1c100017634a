"""
Centralized application configuration implementing the 12-Factor App methodology.
Raw environment variables are validated once against a fixed schema and turned into
an immutable, typed configuration record that is passed explicitly to every subsystem.
"""
import os
from datetime import timedelta
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, get_args

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from esg_platform.core.utils import mask_sensitive_data, parse_duration, split_csv

APP_NAME = "ESG Compliance Platform"
VERSION = "1.0.0"

Environment = Literal["development", "production", "test", "staging"]
LogLevel = Literal["error", "warn", "info", "debug"]

ENVIRONMENTS: Tuple[str, ...] = get_args(Environment)
LOG_LEVELS: Tuple[str, ...] = get_args(LogLevel)

NonEmptyStr = Annotated[str, Field(min_length=1)]
Port = Annotated[int, Field(ge=1, le=65535)]


class ConfigurationError(Exception):
    """Base error for configuration problems detected at startup."""


class ConfigurationValidationError(ConfigurationError):
    """Raised when environment variables violate the configuration schema. Lists every violation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Config validation error: " + "; ".join(self.errors))


class EnvironmentSchema(BaseSettings):
    """Validation schema for the raw environment variables. Unknown variables are ignored."""

    NODE_ENV: Environment = "development"
    PORT: Port = 3000

    # Database
    DB_HOST: NonEmptyStr
    DB_PORT: Port = 5432
    DB_NAME: NonEmptyStr
    DB_USER: NonEmptyStr
    DB_PASSWORD: NonEmptyStr
    DB_SSL: bool = False

    # Redis
    REDIS_HOST: NonEmptyStr = "localhost"
    REDIS_PORT: Port = 6379
    REDIS_PASSWORD: Optional[str] = None

    # JWT
    JWT_SECRET: NonEmptyStr
    JWT_EXPIRES_IN: NonEmptyStr = "7d"
    JWT_REFRESH_SECRET: NonEmptyStr
    JWT_REFRESH_EXPIRES_IN: NonEmptyStr = "30d"

    # Email
    SMTP_HOST: NonEmptyStr
    SMTP_PORT: Port = 587
    SMTP_USER: NonEmptyStr
    SMTP_PASSWORD: NonEmptyStr
    SMTP_FROM_EMAIL: EmailStr
    SMTP_FROM_NAME: NonEmptyStr = APP_NAME

    # AWS
    AWS_ACCESS_KEY_ID: NonEmptyStr
    AWS_SECRET_ACCESS_KEY: NonEmptyStr
    AWS_REGION: NonEmptyStr = "eu-central-1"
    AWS_S3_BUCKET: NonEmptyStr

    SENTRY_DSN: Optional[str] = None

    # Comma-separated list of allowed origins
    FRONTEND_URL: NonEmptyStr

    OPENAI_API_KEY: Optional[str] = None

    # Rate Limiting (15 minutes)
    RATE_LIMIT_WINDOW_MS: int = Field(default=15 * 60 * 1000, gt=0)
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, gt=0)

    # Polish utility providers
    TAURON_API_URL: Optional[str] = None
    TAURON_API_KEY: Optional[str] = None
    PGE_API_URL: Optional[str] = None
    PGE_API_KEY: Optional[str] = None
    ENEA_API_URL: Optional[str] = None
    ENEA_API_KEY: Optional[str] = None

    SESSION_SECRET: NonEmptyStr

    LOG_LEVEL: LogLevel = "info"

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore", frozen=True)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type,
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Only the mapping handed to load() is considered; reading os.environ is read_environment()'s job.
        return (init_settings,)

    @field_validator("DB_SSL", mode="before")
    @classmethod
    def validate_flag(cls, v: Any) -> Any:
        # true/false only, case-insensitive
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip().lower() in ("true", "false"):
            return v.strip().lower() == "true"
        raise ValueError("must be true or false")

    @field_validator("JWT_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("FRONTEND_URL")
    @classmethod
    def validate_origins(cls, v: str) -> str:
        if not split_csv(v):
            raise ValueError("must contain at least one origin")
        return v


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class PoolConfig(_Record):
    min: int = 2
    max: int = 10


class DatabaseConfig(_Record):
    host: str
    port: int
    name: str
    user: str
    password: str
    ssl: bool
    pool: PoolConfig = PoolConfig()


class RedisConfig(_Record):
    host: str
    port: int
    password: Optional[str] = None


class JwtConfig(_Record):
    secret: str
    expires_in: timedelta
    refresh_secret: str
    refresh_expires_in: timedelta
    algorithm: str = "HS256"


class SmtpConfig(_Record):
    host: str
    port: int
    secure: bool
    user: str
    password: str


class SenderConfig(_Record):
    email: str
    name: str


class EmailConfig(_Record):
    smtp: SmtpConfig
    sender: SenderConfig


class AwsConfig(_Record):
    access_key_id: str
    secret_access_key: str
    region: str
    s3_bucket: str


class SentryConfig(_Record):
    dsn: Optional[str] = None


class CorsConfig(_Record):
    origins: Tuple[str, ...]


class ApiConfig(_Record):
    openai_key: Optional[str] = None


class RateLimitConfig(_Record):
    window_ms: int
    max_requests: int

    @property
    def window(self) -> timedelta:
        return timedelta(milliseconds=self.window_ms)


class ProviderConfig(_Record):
    api_url: Optional[str] = None
    api_key: Optional[str] = None


class UtilityProvidersConfig(_Record):
    tauron: ProviderConfig
    pge: ProviderConfig
    enea: ProviderConfig


class CookieConfig(_Record):
    max_age: timedelta = timedelta(days=7)
    http_only: bool = True
    secure: bool = False
    same_site: Literal["lax", "strict", "none"] = "lax"


class SessionConfig(_Record):
    secret: str
    cookie: CookieConfig


class LoggingConfig(_Record):
    level: LogLevel


class LocaleConfig(_Record):
    timezone: str = "Europe/Warsaw"
    locale: str = "pl-PL"
    currency: str = "PLN"
    date_format: str = "DD.MM.YYYY"
    vat_rate: float = 0.23


class SubscriptionPlan(_Record):
    """Resource limits of a subscription tier. -1 means unlimited."""
    max_organizations: int
    max_users: int
    max_reports_per_month: int
    price: int  # net, per month, in the locale currency


class SubscriptionPlans(_Record):
    basic: SubscriptionPlan = SubscriptionPlan(
        max_organizations=1, max_users=5, max_reports_per_month=10, price=299
    )
    professional: SubscriptionPlan = SubscriptionPlan(
        max_organizations=1, max_users=20, max_reports_per_month=50, price=799
    )
    enterprise: SubscriptionPlan = SubscriptionPlan(
        max_organizations=-1, max_users=-1, max_reports_per_month=-1, price=2499
    )

    def tiers(self) -> List[str]:
        return list(type(self).model_fields)

    def get(self, tier: str) -> Optional[SubscriptionPlan]:
        if tier not in type(self).model_fields:
            return None
        return getattr(self, tier)


class BusinessConfig(_Record):
    trial_duration_days: int = 14
    subscription_plans: SubscriptionPlans = SubscriptionPlans()


class Config(_Record):
    """Immutable configuration record shared by every subsystem."""

    environment: Environment
    is_development: bool
    is_production: bool
    is_test: bool
    port: int

    database: DatabaseConfig
    redis: RedisConfig
    jwt: JwtConfig
    email: EmailConfig
    aws: AwsConfig
    sentry: SentryConfig
    cors: CorsConfig
    api: ApiConfig
    rate_limit: RateLimitConfig
    utility_providers: UtilityProvidersConfig
    session: SessionConfig
    logging: LoggingConfig
    locale: LocaleConfig = LocaleConfig()
    business: BusinessConfig = BusinessConfig()

    def summary(self) -> Dict[str, Any]:
        """Loggable overview of the configuration. Secrets are masked."""
        return {
            "environment": self.environment,
            "port": self.port,
            "database": (
                f"{self.database.user}:{mask_sensitive_data(self.database.password)}"
                f"@{self.database.host}:{self.database.port}/{self.database.name}"
            ),
            "database_ssl": self.database.ssl,
            "redis": f"{self.redis.host}:{self.redis.port}",
            "smtp": f"{self.email.smtp.host}:{self.email.smtp.port}",
            "smtp_secure": self.email.smtp.secure,
            "aws_access_key_id": mask_sensitive_data(self.aws.access_key_id),
            "s3_bucket": self.aws.s3_bucket,
            "cors_origins": list(self.cors.origins),
            "sentry_enabled": bool(self.sentry.dsn),
            "rate_limit": f"{self.rate_limit.max_requests}/{self.rate_limit.window_ms}ms",
            "log_level": self.logging.level,
        }


def _describe(error: Dict[str, Any]) -> str:
    """Turns a single pydantic error into an operator-facing message naming the variable."""
    field = ".".join(str(part) for part in error["loc"]) or "environment"
    kind = error["type"]

    if kind == "missing":
        return f"{field} is required"
    if kind == "string_too_short":
        return f"{field} must not be empty"
    if kind == "literal_error":
        allowed = LOG_LEVELS if field == "LOG_LEVEL" else ENVIRONMENTS
        return f"{field} must be one of [{', '.join(allowed)}], got '{error['input']}'"

    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}"


def _provider(url: Optional[str], key: Optional[str]) -> ProviderConfig:
    return ProviderConfig(api_url=url or None, api_key=key or None)


def load(environ: Mapping[str, str]) -> Config:
    """
    Validates a mapping of environment variables and builds the configuration record.
    Collects every violation before failing with ConfigurationValidationError.
    Performs no I/O.
    """
    try:
        env = EnvironmentSchema(**dict(environ))
    except ValidationError as exc:
        raise ConfigurationValidationError([_describe(error) for error in exc.errors()]) from None

    return Config(
        environment=env.NODE_ENV,
        is_development=env.NODE_ENV == "development",
        is_production=env.NODE_ENV == "production",
        is_test=env.NODE_ENV == "test",
        port=env.PORT,
        database=DatabaseConfig(
            host=env.DB_HOST,
            port=env.DB_PORT,
            name=env.DB_NAME,
            user=env.DB_USER,
            password=env.DB_PASSWORD,
            ssl=env.DB_SSL,
        ),
        redis=RedisConfig(
            host=env.REDIS_HOST,
            port=env.REDIS_PORT,
            password=env.REDIS_PASSWORD or None,
        ),
        jwt=JwtConfig(
            secret=env.JWT_SECRET,
            expires_in=parse_duration(env.JWT_EXPIRES_IN),
            refresh_secret=env.JWT_REFRESH_SECRET,
            refresh_expires_in=parse_duration(env.JWT_REFRESH_EXPIRES_IN),
        ),
        email=EmailConfig(
            smtp=SmtpConfig(
                host=env.SMTP_HOST,
                port=env.SMTP_PORT,
                # Port 465 speaks implicit TLS; anything else upgrades with STARTTLS
                secure=env.SMTP_PORT == 465,
                user=env.SMTP_USER,
                password=env.SMTP_PASSWORD,
            ),
            sender=SenderConfig(email=env.SMTP_FROM_EMAIL, name=env.SMTP_FROM_NAME),
        ),
        aws=AwsConfig(
            access_key_id=env.AWS_ACCESS_KEY_ID,
            secret_access_key=env.AWS_SECRET_ACCESS_KEY,
            region=env.AWS_REGION,
            s3_bucket=env.AWS_S3_BUCKET,
        ),
        sentry=SentryConfig(dsn=env.SENTRY_DSN or None),
        cors=CorsConfig(origins=tuple(split_csv(env.FRONTEND_URL))),
        api=ApiConfig(openai_key=env.OPENAI_API_KEY or None),
        rate_limit=RateLimitConfig(
            window_ms=env.RATE_LIMIT_WINDOW_MS,
            max_requests=env.RATE_LIMIT_MAX_REQUESTS,
        ),
        utility_providers=UtilityProvidersConfig(
            tauron=_provider(env.TAURON_API_URL, env.TAURON_API_KEY),
            pge=_provider(env.PGE_API_URL, env.PGE_API_KEY),
            enea=_provider(env.ENEA_API_URL, env.ENEA_API_KEY),
        ),
        session=SessionConfig(
            secret=env.SESSION_SECRET,
            cookie=CookieConfig(secure=env.NODE_ENV == "production"),
        ),
        logging=LoggingConfig(level=env.LOG_LEVEL),
    )


def read_environment(env_file: Optional[str] = ".env") -> Dict[str, str]:
    """
    Gathers raw settings from an optional .env file overlaid by the process environment.
    Variables already set in the process take precedence, as with dotenv.
    """
    values: Dict[str, str] = {}
    if env_file and os.path.isfile(env_file):
        values.update({key: value for key, value in dotenv_values(env_file).items() if value is not None})
    values.update(os.environ)
    return values


def load_from_environment(env_file: Optional[str] = ".env") -> Config:
    """Builds the configuration record for this process. Called once at bootstrap."""
    return load(read_environment(env_file))
