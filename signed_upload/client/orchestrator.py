"""Client side of the signed upload flow.

Each file goes through ``preprocess -> signed URL -> PUT -> report`` on its own
asyncio task. Nothing is retried; every failure ends up in ``on_error``.
"""
import asyncio
import json
from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from signed_upload.client.models import ErrorContext, SignResult, UploadFile
from signed_upload.client.naming import build_signing_query, build_upload_headers
from signed_upload.client.options import UploadOptions
from signed_upload.client.transport import (
    HttpTransport,
    HttpxTransport,
    RequestHandle,
    TransportError,
    TransportResponse,
)
from signed_upload.core.constants import (
    INVALID_RESPONSE_MESSAGE,
    PREPROCESS_FAILED_MESSAGE,
    SIGNING_FAILED_MESSAGE,
    STAGE_RANK,
    STATUS_COMPLETED,
    STATUS_FINALIZING,
    STATUS_UPLOADING,
    STATUS_WAITING,
    TERMINAL_STAGES,
    TRANSPORT_ERROR_MESSAGE,
    UNSUPPORTED_TRANSPORT_MESSAGE,
    UPLOAD_FAILED_MESSAGE,
    UploadStage,
)

logger = structlog.get_logger()


class InvalidStageTransition(RuntimeError):
    pass


class UploadTask:
    def __init__(self, file: UploadFile):
        self.file = file
        self.stage = UploadStage.PENDING
        self.progress = 0
        self.request: RequestHandle | None = None
        self.sign_result: SignResult | None = None
        self.error: str | None = None
        self.history: list[UploadStage] = [UploadStage.PENDING]
        self._pipeline: asyncio.Task | None = None
        self._done = asyncio.Event()

    @property
    def done(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: UploadStage) -> None:
        if STAGE_RANK[stage] <= STAGE_RANK[self.stage]:
            raise InvalidStageTransition(f"{self.file.name}: {self.stage} -> {stage}")
        self.stage = stage
        self.history.append(stage)
        if stage in TERMINAL_STAGES:
            self.request = None
            self._done.set()

    def abort(self) -> None:
        """Cancel the running transfer; does nothing outside of one."""
        if self.stage == UploadStage.UPLOADING and self.request is not None:
            logger.info("upload_abort", file=self.file.name)
            self.request.abort()

    async def wait(self) -> UploadStage:
        await self._done.wait()
        return self.stage


class UploadOrchestrator:
    def __init__(self, options: UploadOptions | None = None, transport: HttpTransport | None = None):
        self.options = options or UploadOptions()
        self._owned_transport = HttpxTransport() if transport is None else None
        self.transport = transport or self._owned_transport
        self.tasks: list[UploadTask] = []

    async def aclose(self) -> None:
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> "UploadOrchestrator":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    def start(self, files: Iterable[UploadFile]) -> list[UploadTask]:
        """Begin uploading every file; must run inside an event loop."""
        tasks = [UploadTask(file) for file in files]
        self.tasks.extend(tasks)
        for task in tasks:
            try:
                self._preprocess(task)
            except Exception as exc:
                self._fail_unexpected(task, exc)
        return tasks

    def abort_all(self) -> None:
        for task in self.tasks:
            task.abort()

    def _preprocess(self, task: UploadTask) -> None:
        task.advance(UploadStage.PREPROCESSING)

        def proceed(file: UploadFile) -> asyncio.Task | None:
            task.file = file
            self.options.on_progress(0, STATUS_WAITING, file)
            task.advance(UploadStage.AWAITING_SIGNED_URL)
            if self.options.get_signed_url is not None:
                try:
                    self.options.get_signed_url(file, lambda result: self._begin_transfer(task, result))
                except Exception as exc:
                    self._fail_unexpected(task, exc)
                return task._pipeline
            return self._spawn(task, self._run_signing(task))

        self.options.preprocess(task.file, proceed)

    def _spawn(self, task: UploadTask, coro) -> asyncio.Task:
        pipeline = asyncio.get_running_loop().create_task(coro)
        pipeline.add_done_callback(lambda finished: self._pipeline_done(task, finished))
        task._pipeline = pipeline
        return pipeline

    def _pipeline_done(self, task: UploadTask, pipeline: asyncio.Task) -> None:
        if pipeline.cancelled():
            if not task.done:
                self._cancel(task)
            return
        exc = pipeline.exception()
        if exc is not None:
            self._fail_unexpected(task, exc)

    def _begin_transfer(self, task: UploadTask, result: SignResult | dict) -> asyncio.Task | None:
        # the transfer coroutine only advances the stage once it runs
        if task.stage != UploadStage.AWAITING_SIGNED_URL or task._pipeline is not None:
            logger.warning("signed_url_ignored", file=task.file.name, stage=str(task.stage))
            return None
        if not isinstance(result, SignResult):
            try:
                result = SignResult.model_validate(result)
            except ValidationError:
                self._fail(task, INVALID_RESPONSE_MESSAGE)
                return None
        return self._spawn(task, self._run_transfer(task, result))

    async def _run_signing(self, task: UploadTask) -> None:
        options = self.options
        url = options.server + options.signing_url + build_signing_query(task.file, options)
        request = self.transport.open(
            options.signing_url_method, url, with_credentials=options.signing_url_with_credentials
        )
        if request is None:
            self._fail(task, UNSUPPORTED_TRANSPORT_MESSAGE)
            return
        for key, value in options.resolve(options.signing_url_headers).items():
            request.set_header(key, str(value))

        task.request = request
        try:
            response = await request.send()
        except asyncio.CancelledError:
            self._cancel(task)
            raise
        except Exception as exc:
            response = _failed_exchange(exc)
        task.request = None

        if response.status not in options.success_responses:
            self._fail(task, SIGNING_FAILED_MESSAGE.format(status=response.status), response)
            return
        try:
            result = SignResult.model_validate(json.loads(response.body))
        except (ValueError, TypeError):
            # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
            self._fail(task, INVALID_RESPONSE_MESSAGE, response)
            return
        logger.info("signed_url_received", file=task.file.name, file_key=result.file_key)
        options.on_signed_url(result)
        await self._run_transfer(task, result)

    async def _run_transfer(self, task: UploadTask, result: SignResult) -> None:
        options = self.options
        file = task.file
        task.sign_result = result
        task.advance(UploadStage.UPLOADING)

        request = self.transport.open("PUT", result.signed_url)
        if request is None:
            self._fail(task, UNSUPPORTED_TRANSPORT_MESSAGE)
            return
        for key, value in build_upload_headers(file, result, options).items():
            request.set_header(key, value)

        def report(loaded: int, total: int) -> None:
            if total <= 0:
                return
            percent = int(loaded / total * 100 + 0.5)
            task.progress = percent
            options.on_progress(percent, STATUS_FINALIZING if percent == 100 else STATUS_UPLOADING, file)

        task.request = request
        try:
            response = await request.send(file.content, on_progress=report)
        except asyncio.CancelledError:
            self._cancel(task)
            raise
        except Exception as exc:
            self._fail(task, TRANSPORT_ERROR_MESSAGE, _failed_exchange(exc))
            return

        if response.status not in options.success_responses:
            self._fail(task, UPLOAD_FAILED_MESSAGE.format(status=response.status), response)
            return
        task.progress = 100
        options.on_progress(100, STATUS_COMPLETED, file)
        task.advance(UploadStage.COMPLETED)
        logger.info("upload_completed", file=file.name, public_url=result.public_url)
        options.on_finish_upload(result, file)

    def _fail_unexpected(self, task: UploadTask, exc: BaseException) -> None:
        logger.error("upload_pipeline_error", file=task.file.name, stage=str(task.stage), exc_info=exc)
        if task.done:
            return
        if task.stage == UploadStage.UPLOADING:
            self._fail(task, TRANSPORT_ERROR_MESSAGE, _failed_exchange(exc))
        elif task.stage == UploadStage.AWAITING_SIGNED_URL:
            self._fail(task, SIGNING_FAILED_MESSAGE.format(status=0), _failed_exchange(exc))
        else:
            self._fail(task, PREPROCESS_FAILED_MESSAGE)

    def _fail(self, task: UploadTask, message: str, response: TransportResponse | None = None) -> None:
        task.error = message
        task.advance(UploadStage.FAILED)
        context = ErrorContext.from_response(response) if response is not None else None
        logger.warning(
            "upload_failed",
            file=task.file.name,
            error=message,
            status=response.status if response is not None else None,
        )
        self.options.on_error(message, task.file, context)

    def _cancel(self, task: UploadTask) -> None:
        if not task.done:
            task.error = "aborted"
            task.advance(UploadStage.FAILED)
        logger.info("upload_aborted", file=task.file.name)


def _failed_exchange(exc: BaseException) -> TransportResponse:
    if isinstance(exc, TransportError):
        return exc.response
    return TransportResponse(status=0, status_text="", body="")
