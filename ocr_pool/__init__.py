"""
OCR Pool Service: распознавание текста на изображениях.

Сервер принимает изображение по HTTP и раздаёт работу фиксированному
пулу потоков-воркеров, у каждого из которых свой движок Tesseract:
    - FastAPI эндпоинт (приём изображения, ожидание результата с дедлайном)
    - FIFO очередь задач и пул воркеров
    - Предобработка: decode -> grayscale -> гамма-контраст
"""

from ocr_pool.config import settings
from ocr_pool.schemas import ProcessImageRequest, ProcessImageResponse

__all__ = [
    "settings",
    "ProcessImageRequest",
    "ProcessImageResponse",
]
