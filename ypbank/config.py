"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
import codecs
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""
    
    app_name: str = Field(default="YPBank Record Formats", alias="YPBANK_APP_NAME")
    log_level: str = Field(default="INFO", alias="YPBANK_LOG_LEVEL")
    
    # Wire formats
    encoding: str = Field(default="utf-8", alias="YPBANK_ENCODING")
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper
    
    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v):
        """Validate the codec is known to Python."""
        try:
            return codecs.lookup(v).name
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
    
    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get library settings singleton.
    
    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
