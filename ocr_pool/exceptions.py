"""
Исключения OCR Pool Service.

Все ошибки сервиса наследуются от OCRPoolError, чтобы вызывающий
код мог перехватить их одним except.
"""


class OCRPoolError(Exception):
    """Базовая ошибка сервиса."""


class DecodeError(OCRPoolError):
    """Байты не удалось декодировать в изображение."""


class EngineInitError(OCRPoolError):
    """Движок распознавания не смог инициализироваться."""


class EngineNotReady(OCRPoolError):
    """Вызов распознавания на неинициализированном движке."""


class QueueShutDown(OCRPoolError):
    """Очередь задач закрыта и больше не принимает работу."""


class ResultTimeout(OCRPoolError):
    """Результат не был записан в канал до истечения дедлайна."""
