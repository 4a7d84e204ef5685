from dataclasses import dataclass
from uuid import uuid4

import structlog

from signed_upload.core.config import Settings
from signed_upload.integrations.storage.base import StorageProvider

logger = structlog.get_logger()


@dataclass
class SignedUpload:
    signed_url: str
    public_url: str
    filename: str
    file_key: str


def key_dir(file_key_dir: str) -> str:
    if not file_key_dir:
        return ""
    return file_key_dir if file_key_dir.endswith("/") else file_key_dir + "/"


class SigningService:
    def __init__(self, settings: Settings, provider: StorageProvider):
        self.settings = settings
        self.provider = provider

    def build_filename(self, object_name: str, path: str = "") -> str:
        prefix = f"{uuid4()}_" if self.settings.s3_unique_prefix else ""
        return f"{path}{prefix}{object_name}"

    def build_file_key(self, file_key_dir: str, filename: str) -> str:
        return key_dir(file_key_dir) + filename

    def sign_upload(
        self,
        object_name: str,
        content_type: str = "",
        path: str = "",
        file_key_dir: str = "",
    ) -> SignedUpload:
        filename = self.build_filename(object_name, path)
        file_key = self.build_file_key(file_key_dir, filename)
        signed_url = self.provider.sign_upload(object_key=file_key, mime_type=content_type)
        logger.info("sign_upload", file_key=file_key, content_type=content_type)
        return SignedUpload(
            signed_url=signed_url,
            public_url=self.settings.s3_public_url_prefix + filename,
            filename=filename,
            file_key=file_key,
        )

    def sign_download(self, file_key_dir: str, key: str) -> str:
        file_key = self.build_file_key(file_key_dir, key)
        logger.info("sign_download", file_key=file_key)
        return self.provider.sign_download(file_key)
