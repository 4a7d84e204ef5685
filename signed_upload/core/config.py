from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Signed Upload API"
    api_prefix: str = "/s3"
    debug: bool = False
    cors_allow_origins: str = "http://localhost:5173,http://localhost:3000"

    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint: str = ""
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_signature_version: str = "s3v4"
    s3_signature_expires: int = Field(default=60, gt=0)
    s3_acl: str = "private"
    s3_unique_prefix: bool = True
    s3_public_url_prefix: str = "/s3/uploads/"

    # extra headers set on every /sign response, e.g. Cache-Control
    sign_response_headers: dict[str, str] = Field(default_factory=dict)

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.cors_allow_origins.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
