from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "lesson-engine"
    APP_VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite:///lessons.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # "today" for past-date checks is taken in this zone (IANA name)
    SCHOOL_TIMEZONE: str = "UTC"

    SKIP_CONFLICTS_DEFAULT: bool = True
    CANCELLATION_REASON_MIN_LENGTH: int = 5
    CANCELLATION_REASON_MAX_LENGTH: int = 500
    NOTES_MAX_LENGTH: int = 1000


settings = Settings()
