"""Configuration management for the training archive service."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "training-archive"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Object Storage Configuration
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    LOCAL_STORAGE_PATH: str = "data/storage"
    PUBLIC_BASE_URL: str = "http://localhost:8000/storage"
    GCP_PROJECT_ID: str = ""
    PHOTOS_BUCKET: str = "training-photos"
    DOCUMENTS_BUCKET: str = "training-documents"

    # Upload Constraints
    MAX_UPLOAD_MB: int = 10
    COMMIT_PROGRESS_CHECKPOINT: int = 70  # Progress shown once bytes are stored

    # Metadata Store Configuration
    METADATA_BACKEND: str = "memory"  # "memory" or "rest"
    METADATA_REST_URL: str = ""  # e.g. https://<project>.supabase.co/rest/v1
    METADATA_API_KEY: str = ""
    METADATA_TIMEOUT_SECONDS: int = 10
    UPLOADS_TABLE: str = "photos"

    # Archive
    RECENT_UPLOADS_DAYS: int = 7

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024


# Singleton settings instance
settings = Settings()
