"""
Обработчик запросов распознавания.

Связывает удалённый вызов с пулом воркеров:
    RECEIVED -> QUEUED -> (COMPLETED | TIMED_OUT)

Обработчик ждёт результат не дольше дедлайна. По таймауту задача
не отменяется: воркер доделает её и запишет результат в канал,
который уже никто не читает.
"""

import logging
from typing import Optional

from ocr_pool.config import settings
from ocr_pool.exceptions import QueueShutDown, ResultTimeout
from ocr_pool.schemas import ProcessImageRequest, ProcessImageResponse, RequestState
from ocr_pool.services.task_queue import Task
from ocr_pool.services.worker_pool import WorkerPool

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Image processing timeout"
SHUTDOWN_MESSAGE = "Server is shutting down"


class RecognitionService:
    """
    Обработчик одного удалённого вызова распознавания.

    Потокобезопасен: process() вызывается параллельно из потоков
    сервера, общее состояние у них одно: очередь пула.
    """

    def __init__(
        self,
        pool: WorkerPool,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.pool = pool
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.request_timeout_seconds
        )

    def process(
        self,
        request: ProcessImageRequest,
        timeout_seconds: Optional[float] = None,
    ) -> ProcessImageResponse:
        """
        Ставит изображение в очередь и ждёт распознанный текст.

        Args:
            request: запрос с изображением и метаданными
            timeout_seconds: дедлайн ожидания (None: из настроек сервиса)

        Returns:
            ProcessImageResponse: результат, таймаут или отказ
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds

        # RECEIVED
        logger.info(
            f"[Server] Получен запрос: {request.filename} "
            f"(client={request.client_id}, batch={request.batch_id})"
        )
        task = Task(
            filename=request.filename,
            image=request.image,
            lang=request.lang,
            client_id=request.client_id,
            batch_id=request.batch_id,
        )

        # QUEUED
        try:
            self.pool.submit(task)
        except QueueShutDown:
            self._log_state(task, RequestState.REJECTED)
            return ProcessImageResponse(ok=False, message=SHUTDOWN_MESSAGE)

        self._log_state(task, RequestState.QUEUED)

        try:
            text = task.channel.wait(timeout=timeout)
        except ResultTimeout:
            # TIMED_OUT: задача остаётся у воркера, результат будет отброшен
            logger.warning(f"[Server] Таймаут обработки: {task.filename} ({timeout} с)")
            self._log_state(task, RequestState.TIMED_OUT)
            return ProcessImageResponse(ok=False, message=TIMEOUT_MESSAGE)

        # COMPLETED
        processing_time_ms = max(0, int((task.channel.fulfilled_at - task.created_at) * 1000))
        self._log_state(task, RequestState.COMPLETED)
        logger.info(
            f"[Server] Запрос завершён: {task.filename}, "
            f"время обработки: {processing_time_ms} ms"
        )

        return ProcessImageResponse(
            ok=True,
            text=text,
            processing_time_ms=processing_time_ms,
        )

    @staticmethod
    def _log_state(task: Task, state: RequestState) -> None:
        logger.debug(f"[Server] {task.filename}: {state.value}")
