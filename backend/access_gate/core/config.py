"""Application configuration loaded from environment variables.

Settings for database, API, bot-challenge verification, email delivery,
identity hashing and submission limits. Uses pydantic-settings for
validation and .env file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "access_gate_dev_password"  # nosec B105

# Minimum length for IP_HASH_SALT in production (128 bits of hex)
_MIN_IP_HASH_SALT_LENGTH = 16

# Every community join link must point at a WhatsApp group invite
COMMUNITY_JOIN_URL_PREFIX = "https://chat.whatsapp.com/"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "access_gate"
    database_user: str = "access_gate_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the discrete fields when set
    database_url_override: str = ""
    database_timeout_seconds: float = 10.0

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Production: Set ALLOWED_ORIGINS to the site domain(s)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Links
    # base_url is the public site origin used to build /join#<token> links
    base_url: str = "http://localhost:3000"
    community_join_url: str = ""

    # Identity hashing (daily IP hash for abuse detection)
    ip_hash_salt: SecretStr = SecretStr("")

    # Bot challenge (Cloudflare Turnstile)
    turnstile_secret_key: SecretStr = SecretStr("")
    turnstile_verify_url: str = (
        "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    )
    turnstile_timeout_seconds: float = 5.0

    # Email
    resend_api_key: SecretStr = SecretStr("")
    email_from: str = "Community Access <noreply@example.org>"
    support_email: str = "whatsapp@example.org"

    # Automatic verification is restricted to this institutional domain suffix
    institutional_email_suffix: str = "ac.uk"

    # Submission limits
    rate_limit_enabled: bool = True  # Disable for testing
    ip_rate_limit_attempts: int = 5
    ip_rate_limit_window_minutes: int = 15
    identity_rate_limit_attempts: int = 3
    identity_rate_limit_window_minutes: int = 30
    manual_request_rate_limit_attempts: int = 3
    rate_limit_max_keys: int = 10_000
    # slowapi format: "count/period"
    rate_limit_join: str = "10/minute"
    # Only enable behind a proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False

    # Committee console
    committee_api_key: SecretStr = SecretStr("")

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security requirements.

        Checks:
        - CORS must not use wildcard origin (all environments)
        - Community join URL must be a WhatsApp invite link (all environments)
        - Limiter ceilings and windows must be positive (all environments)
        - Identity salt must be set (all environments)
        - Production: database password, identity salt length, Turnstile secret and
          Resend key must all be configured
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Set explicit origins for the site."
            )
            raise ValueError(msg)

        if self.community_join_url and not self.community_join_url.startswith(
            COMMUNITY_JOIN_URL_PREFIX
        ):
            msg = (
                "COMMUNITY_JOIN_URL must start with "
                f"'{COMMUNITY_JOIN_URL_PREFIX}'."
            )
            raise ValueError(msg)

        limit_values = {
            "IP_RATE_LIMIT_ATTEMPTS": self.ip_rate_limit_attempts,
            "IP_RATE_LIMIT_WINDOW_MINUTES": self.ip_rate_limit_window_minutes,
            "IDENTITY_RATE_LIMIT_ATTEMPTS": self.identity_rate_limit_attempts,
            "IDENTITY_RATE_LIMIT_WINDOW_MINUTES": self.identity_rate_limit_window_minutes,
            "MANUAL_REQUEST_RATE_LIMIT_ATTEMPTS": self.manual_request_rate_limit_attempts,
            "RATE_LIMIT_MAX_KEYS": self.rate_limit_max_keys,
        }
        for name, value in limit_values.items():
            if value <= 0:
                msg = f"{name} must be positive. Got: {value}"
                raise ValueError(msg)

        if not self.ip_hash_salt.get_secret_value():
            msg = (
                "IP_HASH_SALT must be set. Generate with: "
                'python -c "import secrets; print(secrets.token_hex(32))"'
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if len(self.ip_hash_salt.get_secret_value()) < _MIN_IP_HASH_SALT_LENGTH:
                msg = (
                    f"IP_HASH_SALT must be at least {_MIN_IP_HASH_SALT_LENGTH} "
                    'characters in production. Generate with: python -c "import '
                    'secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            if not self.turnstile_secret_key.get_secret_value():
                msg = "TURNSTILE_SECRET_KEY must be set in production."
                raise ValueError(msg)

            if not self.resend_api_key.get_secret_value():
                msg = "RESEND_API_KEY must be set in production."
                raise ValueError(msg)

        return self


settings = Settings()
