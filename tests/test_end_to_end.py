import re

import httpx
import pytest

from signed_upload.client.models import UploadFile
from signed_upload.client.options import UploadOptions
from signed_upload.client.orchestrator import UploadOrchestrator
from signed_upload.client.transport import HttpxTransport
from signed_upload.core.config import Settings
from signed_upload.core.constants import UploadStage
from signed_upload.integrations.storage.base import StorageProvider
from signed_upload.main import create_app


class BucketProvider(StorageProvider):
    def sign_upload(self, object_key: str, mime_type: str) -> str:
        return f"https://test-bucket.s3.example/{object_key}?X-Amz-Signature=put"

    def sign_download(self, object_key: str) -> str:
        return f"https://test-bucket.s3.example/{object_key}?X-Amz-Signature=get"


@pytest.mark.asyncio
async def test_upload_through_signing_api():
    app = create_app(Settings(s3_bucket="test-bucket"), provider=BucketProvider())
    api = httpx.ASGITransport(app=app)
    sign_requests = []
    puts = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            puts.append(request)
            return httpx.Response(200)
        sign_requests.append(request)
        return await api.handle_async_request(request)

    finished = []
    options = UploadOptions(
        server="http://testserver",
        signing_url="/s3/sign",
        on_finish_upload=lambda result, file: finished.append(result),
    )
    transport = HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    orchestrator = UploadOrchestrator(options, transport)

    [task] = orchestrator.start([UploadFile("my résumé.pdf", b"%PDF-1.7", "application/pdf")])

    assert await task.wait() == UploadStage.COMPLETED
    assert sign_requests[0].url.params["objectName"] == "myrsum.pdf"
    [result] = finished
    assert re.fullmatch(r"[0-9a-f-]{36}_myrsum\.pdf", result.file_key)
    assert result.public_url == "/s3/uploads/" + result.filename
    [put] = puts
    assert put.url.path == "/" + result.file_key
    assert put.headers["content-type"] == "application/pdf"
    assert put.content == b"%PDF-1.7"
