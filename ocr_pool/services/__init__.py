"""
Сервисы OCR обработки.

Модули:
    - task_queue: FIFO очередь задач и сама задача
    - result_channel: одноразовый канал результата
    - preprocessing: decode -> grayscale -> контраст
    - engine: адаптер движка Tesseract
    - worker_pool: пул потоков-воркеров
    - recognition: обработчик удалённого вызова
"""

from ocr_pool.services.engine import RecognitionEngine
from ocr_pool.services.preprocessing import prepare
from ocr_pool.services.recognition import RecognitionService
from ocr_pool.services.result_channel import ResultChannel
from ocr_pool.services.task_queue import Task, TaskQueue
from ocr_pool.services.worker_pool import WorkerPool

__all__ = [
    "RecognitionEngine",
    "RecognitionService",
    "ResultChannel",
    "Task",
    "TaskQueue",
    "WorkerPool",
    "prepare",
]
