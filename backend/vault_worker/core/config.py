"""Worker configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    PROJECT_NAME: str = "Vault Document Worker"
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "vault"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"
    JOB_MAX_RETRIES: int = 3

    # Object storage
    STORAGE_URL: str = "http://localhost:54321/storage/v1"
    STORAGE_SERVICE_KEY: str = ""
    STORAGE_BUCKET: str = "vault"

    # OpenAI
    OPENAI_API_KEY: str = ""
    CLASSIFICATION_MODEL: str = "gpt-4o-mini"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536

    # Timeout budgets in seconds (file I/O shorter than AI calls)
    FILE_DOWNLOAD_TIMEOUT: float = 60.0
    FILE_UPLOAD_TIMEOUT: float = 60.0
    DOCUMENT_PARSE_TIMEOUT: float = 60.0
    IMAGE_CONVERSION_TIMEOUT: float = 60.0
    AI_CLASSIFICATION_TIMEOUT: float = 90.0
    EMBEDDING_TIMEOUT: float = 60.0
    JOB_DISPATCH_TIMEOUT: float = 10.0
    BLOCKING_CALL_WORKERS: int = 8

    # Pipeline
    CONTENT_SAMPLE_WORDS: int = 1000
    DOCUMENT_CONTENT_MAX_WORDS: int = 10000
    HEIC_MAX_DIMENSION: int = 2048
    HEIC_MAX_FILE_SIZE: int = 15 * 1024 * 1024

    # Stale document sweeper
    STALE_DOCUMENT_MINUTES: int = 10
    STALE_DOCUMENT_BATCH_SIZE: int = 500
    STALE_DOCUMENT_SWEEP_INTERVAL_SECONDS: int = 300

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL database URL for SQLAlchemy."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"


settings = Settings()
