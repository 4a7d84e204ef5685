from fastapi import Depends, Request

from signed_upload.core.config import Settings
from signed_upload.integrations.storage.base import StorageProvider
from signed_upload.services.signing_service import SigningService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_provider(request: Request) -> StorageProvider:
    return request.app.state.storage_provider


def get_file_key_dir(request: Request) -> str:
    """Directory prepended to every object key; override per deployment."""
    return ""


def get_signing_service(
    settings: Settings = Depends(get_app_settings),
    provider: StorageProvider = Depends(get_storage_provider),
) -> SigningService:
    return SigningService(settings, provider)
