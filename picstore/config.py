from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage settings
    STORAGE_BACKEND: str = "local"  # local | s3
    STORAGE_LOCAL_DIR: str = ""  # empty -> built-in public/static/upload/
    STORAGE_BASE_URL: str = "/static/upload/"
    MAX_UPLOAD_SIZE_MB: int = 20

    # S3 settings (used when STORAGE_BACKEND=s3)
    S3_BUCKET: str = ""
    S3_PREFIX: str = ""
    S3_REGION: str | None = None
    S3_ENDPOINT_URL: str | None = None

    # Thumbnail sizes generated for every upload, label -> crop parameters
    IMAGE_THUMBNAILS: dict[str, dict[str, Any]] = {
        "small": {"width": 150, "height": 150, "mode": "crop"},
        "medium": {"width": 600, "height": 600, "mode": "fit"},
    }

    # Logging settings
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
