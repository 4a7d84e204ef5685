from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signed_upload.client.transport import TransportResponse


@dataclass(frozen=True)
class UploadFile:
    name: str
    content: bytes
    type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path, type: str = "") -> "UploadFile":
        source = Path(path)
        return cls(name=source.name, content=source.read_bytes(), type=type)


class SignResult(BaseModel):
    """Body returned by the signing server; unknown keys are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    signed_url: str = Field(alias="signedUrl")
    public_url: str = Field(alias="publicUrl")
    headers: dict[str, Any] = Field(default_factory=dict)
    file_key: str | None = Field(default=None, alias="fileKey")
    filename: str | None = None

    @field_validator("headers", mode="before")
    @classmethod
    def null_headers(cls, value: Any) -> Any:
        return {} if value is None else value


@dataclass(frozen=True)
class ErrorContext:
    response: str
    status: int
    status_text: str
    ready_state: int

    @classmethod
    def from_response(cls, response: TransportResponse) -> "ErrorContext":
        return cls(
            response=response.body,
            status=response.status,
            status_text=response.status_text,
            ready_state=response.ready_state,
        )
