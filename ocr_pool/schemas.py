"""
Схемы данных OCR Pool Service.

Включает:
    - Pydantic модели запроса и ответа удалённого вызова
    - Состояния обработки запроса на стороне сервера
"""

from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_LANG = "eng"


# =============================================================================
# Pydantic модели для API
# =============================================================================


class ProcessImageRequest(BaseModel):
    """
    Запрос на распознавание одного изображения.

    Attributes:
        client_id: непрозрачный идентификатор сессии клиента
        batch_id: идентификатор группы, назначенный клиентом
        filename: имя файла (только для логов)
        image: сырые байты изображения
        lang: язык распознавания для Tesseract
    """

    client_id: str = ""
    batch_id: str = ""
    filename: str = ""
    image: bytes = b""
    lang: str = Field(
        default=DEFAULT_LANG,
        description="Язык Tesseract: 'eng', 'rus', 'rus+eng'",
    )


class ProcessImageResponse(BaseModel):
    """
    Ответ на запрос распознавания.

    Attributes:
        ok: успешность операции
        text: распознанный текст (имеет смысл только при ok=True)
        message: описание ошибки или таймаута (только при ok=False)
        processing_time_ms: время от создания задачи до готового результата
    """

    ok: bool
    text: str = ""
    message: str = ""
    processing_time_ms: int = 0


class RequestState(str, Enum):
    """Жизненный цикл запроса на стороне обработчика."""

    RECEIVED = "received"
    QUEUED = "queued"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"
