from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    orthanc_url: str = "http://localhost:8042"
    orthanc_username: str = ""
    orthanc_password: str = ""
    orthanc_timeout_seconds: int = 30

    # Empty means "first one Orthanc is configured with"
    source_modality: str = ""
    target_peer: str = ""

    forbidden_modality: str = "US"
    tags_to_keep: list[str] = ["StudyDescription", "SeriesDescription"]
    push_compress: bool = True

    store_capacity: int = 1000
    change_poll_interval_seconds: int = 1
    changes_batch_limit: int = 100

    intake_file: str = ""
