import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from signed_upload.core.constants import READY_STATE_DONE

logger = structlog.get_logger()

CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class TransportResponse:
    status: int
    status_text: str = ""
    body: str = ""
    ready_state: int = READY_STATE_DONE


class TransportError(Exception):
    """The exchange failed below HTTP; there is no usable status."""

    def __init__(self, message: str):
        super().__init__(message)
        self.response = TransportResponse(status=0, status_text="", body="")


class RequestHandle(Protocol):
    def set_header(self, name: str, value: str) -> None: ...

    async def send(
        self, body: bytes | None = None, on_progress: ProgressCallback | None = None
    ) -> TransportResponse: ...

    def abort(self) -> None: ...


class HttpTransport(Protocol):
    def open(self, method: str, url: str, *, with_credentials: bool = False) -> RequestHandle | None: ...


class HttpxRequestHandle:
    def __init__(self, client: httpx.AsyncClient, method: str, url: str, auth: httpx.Auth | None):
        self.client = client
        self.method = method
        self.url = url
        self.auth = auth
        self.headers: dict[str, str] = {}
        self._task: asyncio.Task | None = None

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    async def send(
        self, body: bytes | None = None, on_progress: ProgressCallback | None = None
    ) -> TransportResponse:
        self._task = asyncio.current_task()
        headers = dict(self.headers)
        content = None
        if body is not None:
            headers["content-length"] = str(len(body))
            content = _stream_body(body, on_progress)
        try:
            request = self.client.build_request(self.method, self.url, headers=headers, content=content)
            response = await self.client.send(request, auth=self.auth)
            text = response.text
        except Exception as exc:
            # anything short of cancellation means no usable status
            logger.warning("transport_error", method=self.method, url=self.url, error=str(exc))
            raise TransportError(str(exc)) from exc
        finally:
            self._task = None
        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            body=text,
        )

    def abort(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()


async def _stream_body(body: bytes, on_progress: ProgressCallback | None) -> AsyncIterator[bytes]:
    total = len(body)
    for offset in range(0, total, CHUNK_SIZE):
        chunk = body[offset : offset + CHUNK_SIZE]
        yield chunk
        if on_progress is not None:
            on_progress(offset + len(chunk), total)


class HttpxTransport:
    """Sends requests through an ``httpx.AsyncClient``.

    ``auth`` is only attached to requests opened with ``with_credentials=True``.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, auth: httpx.Auth | None = None):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=None)
        self.auth = auth

    def open(self, method: str, url: str, *, with_credentials: bool = False) -> HttpxRequestHandle:
        return HttpxRequestHandle(self.client, method, url, self.auth if with_credentials else None)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
