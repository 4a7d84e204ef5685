from collections.abc import Callable, Mapping
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from signed_upload.client.models import ErrorContext, SignResult, UploadFile
from signed_upload.client.naming import scrub_filename
from signed_upload.core.constants import (
    DEFAULT_SIGNING_METHOD,
    DEFAULT_SIGNING_URL,
    DEFAULT_SUCCESS_RESPONSES,
)

logger = structlog.get_logger()

StaticMap = Mapping[str, Any]
MapSource = StaticMap | Callable[[], StaticMap]

Continuation = Callable[[UploadFile], Any]
SignedUrlCallback = Callable[[SignResult | dict], Any]


def resolve_mapping(source: MapSource | None) -> dict[str, Any]:
    if source is None:
        return {}
    value = source() if callable(source) else source
    return dict(value or {})


def default_preprocess(file: UploadFile, next: Continuation) -> Any:
    logger.info("preprocess", file=file.name)
    return next(file)


def default_on_progress(percent: int, status: str, file: UploadFile) -> None:
    logger.info("upload_progress", file=file.name, percent=percent, status=status)


def default_on_finish_upload(sign_result: SignResult, file: UploadFile) -> None:
    logger.info("upload_finished", file=file.name, public_url=sign_result.public_url)


def default_on_error(message: str, file: UploadFile, context: ErrorContext | None = None) -> None:
    logger.info("upload_error", file=file.name, error=message)


def default_on_signed_url(sign_result: SignResult) -> None:
    return None


class UploadOptions(BaseModel):
    """Settings and hooks for one orchestrator; immutable once built."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    server: str = ""
    signing_url: str = DEFAULT_SIGNING_URL
    signing_url_method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = DEFAULT_SIGNING_METHOD
    success_responses: frozenset[int] = DEFAULT_SUCCESS_RESPONSES
    s3_path: str = ""
    signing_url_with_credentials: bool = False
    content_disposition: str = ""
    upload_request_headers: MapSource | None = None
    signing_url_query_params: MapSource = Field(default_factory=dict)
    signing_url_headers: MapSource = Field(default_factory=dict)

    preprocess: Callable[[UploadFile, Continuation], Any] = default_preprocess
    on_progress: Callable[[int, str, UploadFile], Any] = default_on_progress
    on_finish_upload: Callable[[SignResult, UploadFile], Any] = default_on_finish_upload
    on_error: Callable[..., Any] = default_on_error
    on_signed_url: Callable[[SignResult], Any] = default_on_signed_url
    scrub_filename: Callable[[str], str] = scrub_filename
    get_signed_url: Callable[[UploadFile, SignedUrlCallback], Any] | None = None

    @field_validator("signing_url_method", mode="before")
    @classmethod
    def upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("success_responses")
    @classmethod
    def require_success_status(cls, value: frozenset[int]) -> frozenset[int]:
        if not value:
            raise ValueError("success_responses must not be empty")
        return value

    @staticmethod
    def resolve(source: MapSource | None) -> dict[str, Any]:
        return resolve_mapping(source)
