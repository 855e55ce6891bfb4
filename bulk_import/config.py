from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "BI_", "env_file": ".env", "env_file_encoding": "utf-8"}

    auth_username: str = Field(default="admin")
    auth_password: str = Field(min_length=1)
    jwt_secret: str = Field(min_length=32)
    jwt_expire_minutes: int = Field(default=1440)
    cors_origins: str = Field(default="http://localhost:3000")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    # Document store
    store_backend: str = Field(default="sanity", pattern=r"^(sanity|sqlite)$")
    sanity_project_id: str = Field(default="")
    sanity_dataset: str = Field(default="production")
    sanity_token: str = Field(default="")
    sanity_api_version: str = Field(default="2023-05-03")
    sanity_timeout_seconds: float = Field(default=60.0, gt=0)
    db_path: str = Field(default="documents.db")

    # Import pipeline
    batch_size: int = Field(default=50, ge=1)
    max_retries: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    checkpoint_interval: int = Field(default=50, ge=1)
    checkpoint_dir: str = Field(default="checkpoints")
    checkpoint_retention: str = Field(default="7d")
    backup_dir: str = Field(default="backups")


settings = Settings()
