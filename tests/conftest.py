"""
Общие фикстуры тестов OCR Pool Service.

FakeEngine подменяет Tesseract: тесты пула и обработчика не зависят
от установленного бинарника.
"""

import io
import threading
import time
from functools import partial

import pytest
from PIL import Image

from ocr_pool.exceptions import EngineInitError, EngineNotReady


def make_image_bytes(
    size: tuple[int, int] = (10, 10),
    color="white",
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    """Кодирует однотонное изображение в байты файла."""
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeEngine:
    """
    Движок-заглушка с тем же интерфейсом, что RecognitionEngine.

    Ширина изображения используется как номер задачи: по ней тесты
    проверяют порядок обработки. Изображение шириной fail_width
    вызывает ошибку распознавания.
    """

    def __init__(
        self,
        lang: str = "eng",
        text: str = "hello",
        delay: float = 0.0,
        fail_init: bool = False,
        fail_width: int = -1,
        log: list = None,
    ) -> None:
        self.lang = lang
        self.text = text
        self.delay = delay
        self.fail_init = fail_init
        self.fail_width = fail_width
        self.log = log if log is not None else []
        self.ready = False
        self.threads: set[str] = set()

    def initialize(self) -> None:
        if self.fail_init:
            raise EngineInitError("tessdata not found")
        self.ready = True

    def recognize(self, image: Image.Image, lang: str = None) -> str:
        if not self.ready:
            raise EngineNotReady("Движок OCR не инициализирован")

        self.threads.add(threading.current_thread().name)
        width = image.size[0]
        self.log.append(width)

        if self.delay:
            time.sleep(self.delay)
        if width == self.fail_width:
            raise RuntimeError("boom")
        return self.text


@pytest.fixture
def white_png() -> bytes:
    return make_image_bytes()


@pytest.fixture
def engine_log() -> list:
    return []


@pytest.fixture
def fake_factory(engine_log):
    """Фабрика движков, пишущих номера задач в общий engine_log."""
    return partial(FakeEngine, log=engine_log)
