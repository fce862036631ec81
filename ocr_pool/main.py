"""
OCR Pool Service: FastAPI приложение.

Принимает изображение, ставит его в очередь пула воркеров
и возвращает распознанный текст.

Эндпоинты:
    POST /ocr/process: распознавание одного изображения
    GET  /health: состояние Tesseract и пула воркеров

Запуск:
    python -m ocr_pool.main
    uvicorn ocr_pool.main:app --host 0.0.0.0 --port 50051
"""

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ocr_pool.config import settings
from ocr_pool.schemas import DEFAULT_LANG, ProcessImageRequest, ProcessImageResponse
from ocr_pool.services.recognition import RecognitionService
from ocr_pool.services.worker_pool import WorkerPool

# Настройка логгера
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [OCR-Pool] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


class UnicodeJSONResponse(JSONResponse):
    """JSON ответ с нормальным отображением не-ASCII текста (без \\uXXXX)."""

    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


def build_pool() -> WorkerPool:
    """Создаёт пул воркеров по настройкам процесса."""
    return WorkerPool(worker_count=settings.worker_count)


@asynccontextmanager
async def lifespan(app: FastAPI):
    pool = build_pool()
    pool.start()
    app.state.pool = pool
    app.state.service = RecognitionService(pool)
    logger.info(
        f"OCR Pool Service готов: {pool.worker_count} воркеров, "
        f"дедлайн {settings.request_timeout_seconds} с"
    )
    try:
        yield
    finally:
        # join воркеров блокирующий, уводим его из event loop
        await run_in_threadpool(pool.stop)


# FastAPI приложение
app = FastAPI(
    title="OCR Pool Service",
    description="Распознавание текста на изображениях через пул воркеров Tesseract",
    version="1.0.0",
    default_response_class=UnicodeJSONResponse,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check(request: Request) -> dict:
    """
    Проверка работоспособности сервиса.

    Сервис считается degraded, если Tesseract недоступен
    или хотя бы один воркер не смог инициализировать движок.

    Returns:
        dict: статус сервиса, Tesseract и статистика пула
    """
    tesseract_ok = False
    tesseract_version = "unknown"
    try:
        import pytesseract
        tesseract_version = str(pytesseract.get_tesseract_version())
        tesseract_ok = True
    except Exception as e:
        tesseract_version = f"error: {e}"

    pool_stats = request.app.state.pool.stats()
    healthy = tesseract_ok and pool_stats["failed_engines"] == 0

    return {
        "status": "ok" if healthy else "degraded",
        "service": "ocr-pool",
        "version": "1.0.0",
        "cpu_count": os.cpu_count(),
        "tesseract": {
            "available": tesseract_ok,
            "version": tesseract_version,
        },
        "pool": pool_stats,
        "config": {
            "max_file_size_mb": settings.max_file_size_mb,
            "request_timeout_seconds": settings.request_timeout_seconds,
            "default_lang": settings.default_lang,
            "ocr_oem": settings.ocr_oem,
            "ocr_psm": settings.ocr_psm,
        },
    }


@app.post("/ocr/process", response_model=ProcessImageResponse)
async def process_image(
    request: Request,
    image: UploadFile = File(..., description="Изображение для распознавания"),
    client_id: str = Form(default="", description="Идентификатор сессии клиента"),
    batch_id: str = Form(default="", description="Идентификатор группы запросов"),
    filename: Optional[str] = Form(default=None, description="Имя файла для логов"),
    lang: str = Form(default=DEFAULT_LANG, description="Язык Tesseract"),
    timeout_seconds: Optional[float] = Form(
        default=None,
        gt=0,
        description="Дедлайн ожидания результата, секунды",
    ),
) -> ProcessImageResponse:
    """
    Распознаёт текст на одном изображении.

    Таймаут и остановка сервера возвращаются как ok=False с сообщением,
    а не как HTTP ошибка.

    Args:
        image: файл изображения (multipart/form-data)
        client_id: идентификатор сессии
        batch_id: идентификатор группы
        filename: имя файла (по умолчанию имя загруженного файла)
        lang: язык распознавания
        timeout_seconds: дедлайн ожидания

    Returns:
        ProcessImageResponse: результат распознавания

    Raises:
        HTTPException: 413 если файл больше max_file_size_mb
    """
    image_bytes = await _read_image(image)

    process_request = ProcessImageRequest(
        client_id=client_id,
        batch_id=batch_id,
        filename=filename or image.filename or "unknown",
        image=image_bytes,
        lang=lang or DEFAULT_LANG,
    )

    # Ожидание результата блокирующее, каждый запрос в своём потоке
    service: RecognitionService = request.app.state.service
    return await run_in_threadpool(service.process, process_request, timeout_seconds)


async def _read_image(file: UploadFile) -> bytes:
    """
    Читает загруженный файл и проверяет размер.

    Формат не проверяется: нечитаемое изображение даёт пустой текст.

    Raises:
        HTTPException: при превышении лимита размера
    """
    file_bytes = await file.read()

    max_size = settings.max_file_size_mb * 1024 * 1024
    if len(file_bytes) > max_size:
        raise HTTPException(
            status_code=413,
            detail={
                "error": "file_too_large",
                "message": f"Файл слишком большой: {len(file_bytes)} байт, "
                f"максимум: {settings.max_file_size_mb} МБ",
            },
        )

    return file_bytes


def run() -> None:
    """Запускает HTTP сервер. Ошибка bind порта фатальна для процесса."""
    import uvicorn

    logger.info(f"Запуск OCR Pool Service на {settings.host}:{settings.port}")
    logger.info(f"Воркеров: {settings.worker_count}, CPU ядер: {os.cpu_count()}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    run()
