from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import PlainTextResponse, RedirectResponse
from prometheus_client import Counter

from signed_upload.api.deps import get_app_settings, get_file_key_dir, get_signing_service
from signed_upload.core.config import Settings
from signed_upload.core.constants import SIGN_FAILED_DETAIL
from signed_upload.integrations.storage.base import StorageSigningError
from signed_upload.schemas.sign import SignedUrlResponse
from signed_upload.services.signing_service import SigningService

router = APIRouter(tags=["sign"])
SIGN_COUNTER = Counter(
    "signed_upload_sign_requests_total",
    "Signed URL requests",
    ["route", "outcome"],
)


def _sign_failed() -> PlainTextResponse:
    return PlainTextResponse(SIGN_FAILED_DETAIL, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/sign", response_model=SignedUrlResponse)
async def sign_upload(
    response: Response,
    object_name: str = Query(alias="objectName", min_length=1),
    content_type: str = Query(default="", alias="contentType"),
    path: str = Query(default=""),
    file_key_dir: str = Depends(get_file_key_dir),
    settings: Settings = Depends(get_app_settings),
    service: SigningService = Depends(get_signing_service),
):
    try:
        signed = service.sign_upload(
            object_name=object_name,
            content_type=content_type,
            path=path,
            file_key_dir=file_key_dir,
        )
    except StorageSigningError:
        SIGN_COUNTER.labels(route="sign", outcome="error").inc()
        return _sign_failed()
    SIGN_COUNTER.labels(route="sign", outcome="ok").inc()
    if settings.sign_response_headers:
        response.headers.update(settings.sign_response_headers)
    return SignedUrlResponse(
        signed_url=signed.signed_url,
        public_url=signed.public_url,
        filename=signed.filename,
        file_key=signed.file_key,
    )


def _redirect_to_object(service: SigningService, file_key_dir: str, key: str, route: str) -> Response:
    try:
        url = service.sign_download(file_key_dir, key)
    except StorageSigningError:
        SIGN_COUNTER.labels(route=route, outcome="error").inc()
        return _sign_failed()
    SIGN_COUNTER.labels(route=route, outcome="ok").inc()
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/img/{key:path}")
async def image_redirect(
    key: str,
    file_key_dir: str = Depends(get_file_key_dir),
    service: SigningService = Depends(get_signing_service),
):
    return _redirect_to_object(service, file_key_dir, key, route="img")


@router.get("/uploads/{key:path}")
async def upload_redirect(
    key: str,
    file_key_dir: str = Depends(get_file_key_dir),
    service: SigningService = Depends(get_signing_service),
):
    return _redirect_to_object(service, file_key_dir, key, route="uploads")
