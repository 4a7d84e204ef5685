from enum import StrEnum


class UploadStage(StrEnum):
    PENDING = "pending"
    PREPROCESSING = "preprocessing"
    AWAITING_SIGNED_URL = "awaiting_signed_url"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


STAGE_RANK = {
    UploadStage.PENDING: 0,
    UploadStage.PREPROCESSING: 1,
    UploadStage.AWAITING_SIGNED_URL: 2,
    UploadStage.UPLOADING: 3,
    UploadStage.COMPLETED: 4,
    UploadStage.FAILED: 4,
}

TERMINAL_STAGES = frozenset({UploadStage.COMPLETED, UploadStage.FAILED})

# 2001 is kept as shipped; clients that only want real statuses pass their own set
DEFAULT_SUCCESS_RESPONSES = frozenset({200, 2001})
DEFAULT_SIGNING_URL = "/sign-s3"
DEFAULT_SIGNING_METHOD = "GET"
DEFAULT_MIME_TYPE = "application/octet-stream"

READY_STATE_DONE = 4

STATUS_WAITING = "Waiting"
STATUS_UPLOADING = "Uploading"
STATUS_FINALIZING = "Finalizing"
STATUS_COMPLETED = "Upload completed"

SIGNING_FAILED_MESSAGE = "Could not contact request signing server. Status = {status}"
INVALID_RESPONSE_MESSAGE = "Invalid response from server"
PREPROCESS_FAILED_MESSAGE = "Preprocess error"
UPLOAD_FAILED_MESSAGE = "Upload error: {status}"
TRANSPORT_ERROR_MESSAGE = "XHR error"
UNSUPPORTED_TRANSPORT_MESSAGE = "CORS not supported"
SIGN_FAILED_DETAIL = "Cannot create S3 signed URL"
