from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Visit Scheduler API"
    API_V1_STR: str = "/api/v1"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "visit_scheduler"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Booking policy
    MAX_PROXIMITY_MINUTES: int = 180
    EXPIRED_APPLICATION_TTL_MINUTES: int = 60 * 24
    MAX_TOTAL_VISITORS: int = 6
    MIN_SUPPORT_DESCRIPTION_LENGTH: int = 3
    POLICY_NOTICE_DAYS_MIN: int = 2
    POLICY_NOTICE_DAYS_MAX: int = 28
    FLAG_VISITS_DAYS_AHEAD: int = 28

    # Scheduled tasks
    EXPIRED_APPLICATION_TASK_ENABLED: bool = True
    EXPIRED_APPLICATION_TASK_INTERVAL_SECONDS: int = 15 * 60
    FLAG_VISITS_TASK_ENABLED: bool = True
    FLAG_VISITS_TASK_INTERVAL_SECONDS: int = 60 * 60 * 24
    TASK_LOCK_AT_MOST_FOR_SECONDS: int = 60 * 60

    # Prisoner search
    PRISONER_SEARCH_URL: str = "http://localhost:8082"
    PRISONER_SEARCH_TIMEOUT_SECONDS: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
