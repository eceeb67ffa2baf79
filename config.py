from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

from localization import Locale


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Payments Ledger API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Rate limiting of account opening and transfers
    enable_rate_limit: bool = True
    rate_limit_per_minute: int = 30

    # Presentation locale for error messages and status labels
    locale: Locale = Locale.english

    # IBAN generation
    iban_country_prefix: str = "BY"
    iban_max_attempts: int = 1_000_000

    # Special accounts, created once per ledger
    emission_iban: str = "BY84 ALFA 1000 0000 0000 0000 0000"
    destruction_iban: str = "BY84 ALFA 1000 0000 0000 0000 0001"

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("iban_country_prefix")
    @classmethod
    def validate_country_prefix(cls, v):
        if len(v) != 2 or not v.isalpha() or not v.isupper():
            raise ValueError("IBAN country prefix must be two uppercase letters")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Environment-specific configurations
class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: str = "text"
    rate_limit_per_minute: int = 100  # More lenient for development


class ProductionSettings(Settings):
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_per_minute: int = 30


class TestingSettings(Settings):
    debug: bool = True
    log_level: str = "WARNING"  # Reduce noise in tests
    enable_rate_limit: bool = False
    iban_max_attempts: int = 100_000


def get_settings_for_environment(env: str = "development") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()
