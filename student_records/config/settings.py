import re
from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Student Records Server"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    LOG_CONFIG_PATH: Optional[str] = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./students.db"

    # Student records
    EXPORT_DIR: str = "exports"
    ALLOWED_EMAIL_DOMAINS: Union[str, List[str]] = ""
    DEFAULT_PAGE_SIZE: int = 20
    # Country phone format, e.g. ^(0[35789]\d{8})$|^(\+84[35789]\d{8})$ for Vietnam.
    # Unset means at least ten digits.
    PHONE_NUMBER_PATTERN: Optional[str] = None

    @field_validator("ALLOWED_HOSTS", "ALLOWED_EMAIL_DOMAINS", mode="before")
    def assemble_string_list(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("PHONE_NUMBER_PATTERN")
    def check_phone_pattern(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid phone number pattern: {e}")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        validate_default=True,
    )


settings = Settings()
