"""
Конфигурация OCR Pool Service.

Все значения читаются из .env файла (или переменных окружения)
с префиксом OCR_. У каждого параметра есть дефолт, поэтому сервис
стартует и без .env.

Параметры читаются один раз при старте процесса.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки OCR Pool Service.

    Читает переменные с префиксом OCR_ из .env файла.
    """

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Сервер ---
    host: str = "0.0.0.0"
    port: int = 50051

    # --- Пул воркеров ---
    # Количество долгоживущих потоков, каждый со своим движком Tesseract
    worker_count: int = Field(default=4, ge=1)

    # --- Лимиты запроса ---
    # Сколько обработчик ждёт результат, прежде чем вернуть таймаут
    request_timeout_seconds: float = Field(default=120.0, gt=0)
    max_file_size_mb: int = 20

    # --- OCR: Tesseract ---
    default_lang: str = "eng"
    tessdata_dir: Optional[str] = None
    ocr_oem: int = 3
    ocr_psm: int = 3


# Глобальный экземпляр настроек
settings = Settings()
