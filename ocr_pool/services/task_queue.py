"""
Очередь задач распознавания.

Неограниченная FIFO очередь, общая для всех воркеров пула.
Реализована как монитор: deque под threading.Condition, условие
ожидания "есть задачи ИЛИ запрошена остановка".

Семантика остановки: после shutdown() новые задачи не принимаются,
но уже поставленные задачи воркеры дочитывают до конца.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from ocr_pool.exceptions import QueueShutDown
from ocr_pool.schemas import DEFAULT_LANG
from ocr_pool.services.result_channel import ResultChannel

logger = logging.getLogger(__name__)


@dataclass
class Task:
    """
    Единица работы: одно изображение из одного запроса.

    Attributes:
        filename: имя файла (только для логов)
        image: байты изображения, зафиксированные при создании
        lang: язык распознавания
        client_id: идентификатор сессии клиента (для логов)
        batch_id: идентификатор группы (для логов)
        created_at: момент создания по time.monotonic
        channel: канал, в который воркер запишет результат
    """

    filename: str
    image: bytes
    lang: str = DEFAULT_LANG
    client_id: str = ""
    batch_id: str = ""
    created_at: float = field(default_factory=time.monotonic)
    channel: ResultChannel = field(default_factory=ResultChannel)

    def __post_init__(self) -> None:
        if not self.lang:
            self.lang = DEFAULT_LANG
        # bytearray/memoryview -> неизменяемые bytes
        self.image = bytes(self.image)


class TaskQueue:
    """
    Потокобезопасная FIFO очередь задач.

    Никаких приоритетов, дедупликации и ограничения длины:
    порядок выдачи совпадает с порядком постановки.
    """

    def __init__(self) -> None:
        self._tasks: deque[Task] = deque()
        self._cond = threading.Condition()
        self._shutdown = False

    def submit(self, task: Task) -> None:
        """
        Ставит задачу в конец очереди и будит один ожидающий воркер.

        Raises:
            QueueShutDown: если очередь уже закрыта
        """
        with self._cond:
            if self._shutdown:
                raise QueueShutDown("Очередь закрыта, задача не принята")
            self._tasks.append(task)
            pending = len(self._tasks)
            self._cond.notify()

        logger.info(f"[Queue] Задача принята: {task.filename}, в очереди: {pending}")

    def take(self) -> Optional[Task]:
        """
        Забирает задачу из головы очереди, блокируясь до её появления.

        Returns:
            Task или None: сигнал остановки (очередь закрыта и пуста)
        """
        with self._cond:
            self._cond.wait_for(lambda: self._shutdown or self._tasks)

            if not self._tasks:
                # Сюда попадаем только при shutdown и пустой очереди
                return None

            task = self._tasks.popleft()
            pending = len(self._tasks)

        logger.info(f"[Queue] Задача извлечена: {task.filename}, в очереди: {pending}")
        return task

    def shutdown(self) -> None:
        """Закрывает очередь и будит все ожидающие воркеры. Идемпотентно."""
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._shutdown

    def pending(self) -> int:
        with self._cond:
            return len(self._tasks)
