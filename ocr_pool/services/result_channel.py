"""
Канал результата задачи.

Одноразовая передача значения от воркера к обработчику запроса:
один писатель, один читатель, запись не более одного раза.
Построен поверх concurrent.futures.Future.
"""

import time
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from ocr_pool.exceptions import ResultTimeout


class ResultChannel:
    """
    Канал для передачи распознанного текста из воркера.

    Повторная запись игнорируется и не перезаписывает первое значение.
    Запись после того, как читатель ушёл по таймауту, допустима:
    значение просто никто не прочитает.
    """

    def __init__(self) -> None:
        # Значение хранится вместе с моментом записи (time.monotonic)
        self._future: Future = Future()

    def put(self, text: str) -> bool:
        """
        Записывает результат в канал.

        Args:
            text: распознанный текст или строка-маркер ошибки

        Returns:
            bool: True если запись принята, False если канал уже заполнен
        """
        try:
            self._future.set_result((text, time.monotonic()))
        except InvalidStateError:
            return False
        return True

    def wait(self, timeout: Optional[float] = None) -> str:
        """
        Ждёт результат не дольше timeout секунд.

        Args:
            timeout: дедлайн в секундах (None: ждать бесконечно)

        Returns:
            str: записанный текст

        Raises:
            ResultTimeout: если результат не появился до дедлайна
        """
        try:
            text, _ = self._future.result(timeout=timeout)
        except FutureTimeoutError:
            raise ResultTimeout(f"Результат не получен за {timeout} с")
        return text

    def done(self) -> bool:
        return self._future.done()

    @property
    def fulfilled_at(self) -> Optional[float]:
        """Момент записи результата (time.monotonic) или None."""
        if not self._future.done():
            return None
        return self._future.result()[1]
