"""
Адаптер движка распознавания Tesseract.

Каждый воркер владеет своим экземпляром RecognitionEngine на всё
время жизни потока. Экземпляр не потокобезопасен и никогда не
передаётся между воркерами, поэтому блокировок вокруг него нет.

Инициализация (проверка бинарника и языковых пакетов) дорогая
и выполняется один раз при старте воркера.
"""

import logging
from typing import Optional

import pytesseract
from PIL import Image

from ocr_pool.config import settings
from ocr_pool.exceptions import EngineInitError, EngineNotReady

logger = logging.getLogger(__name__)


class RecognitionEngine:
    """
    Обёртка над pytesseract с однократной инициализацией.

    Attributes:
        lang: язык по умолчанию для распознавания
        tessdata_dir: каталог с языковыми пакетами (None: системный)
        oem: режим движка Tesseract (--oem)
        psm: режим сегментации страницы (--psm)
    """

    def __init__(
        self,
        lang: str = "eng",
        tessdata_dir: Optional[str] = None,
        oem: Optional[int] = None,
        psm: Optional[int] = None,
    ) -> None:
        self.lang = lang
        self.tessdata_dir = tessdata_dir if tessdata_dir is not None else settings.tessdata_dir
        self.oem = oem if oem is not None else settings.ocr_oem
        self.psm = psm if psm is not None else settings.ocr_psm

        self._config: Optional[str] = None
        self.version: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._config is not None

    def initialize(self) -> None:
        """
        Проверяет доступность Tesseract и языковых пакетов.

        Raises:
            EngineInitError: бинарник не найден или язык не установлен
        """
        config = f"--oem {self.oem} --psm {self.psm}"
        if self.tessdata_dir:
            config += f' --tessdata-dir "{self.tessdata_dir}"'

        try:
            self.version = str(pytesseract.get_tesseract_version())
            languages = set(pytesseract.get_languages(config=config))
        except Exception as e:
            raise EngineInitError(f"Tesseract недоступен: {e}") from e

        missing = [part for part in self.lang.split("+") if part not in languages]
        if missing:
            raise EngineInitError(
                f"Языки не установлены: {', '.join(missing)} "
                f"(доступны: {', '.join(sorted(languages)) or 'нет'})"
            )

        self._config = config

    def recognize(self, image: Image.Image, lang: Optional[str] = None) -> str:
        """
        Распознаёт текст на подготовленном изображении.

        Args:
            image: изображение после предобработки
            lang: язык запроса (None: язык движка)

        Returns:
            str: распознанный текст, может быть пустым

        Raises:
            EngineNotReady: движок не прошёл инициализацию
        """
        if self._config is None:
            raise EngineNotReady("Движок OCR не инициализирован")

        lang = lang or self.lang
        # Язык, которого нет в tessdata, Tesseract всё равно попытается загрузить
        # и упадёт с TesseractError, это ошибка задачи, а не движка
        return pytesseract.image_to_string(image, lang=lang, config=self._config)
