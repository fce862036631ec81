"""
Пул воркеров распознавания.

Фиксированное число долгоживущих потоков. Каждый поток:
    1. Создаёт и инициализирует собственный RecognitionEngine
    2. В цикле забирает задачу из TaskQueue
    3. Предобработка -> распознавание -> запись результата в канал задачи

Ошибка одной задачи никогда не роняет воркер: она превращается
в пустой текст (ошибка декодирования) или строку "ERROR: ...".

Остановка: stop() закрывает очередь, воркеры дочитывают уже
поставленные задачи и завершаются, затем потоки join'ятся.
"""

import logging
import threading
from typing import Callable, Optional

from ocr_pool.config import settings
from ocr_pool.exceptions import DecodeError, EngineInitError, EngineNotReady
from ocr_pool.services.engine import RecognitionEngine
from ocr_pool.services.preprocessing import prepare
from ocr_pool.services.task_queue import Task, TaskQueue

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR: "


class WorkerPool:
    """
    Пул потоков, разбирающих общую очередь задач.

    Attributes:
        worker_count: количество потоков-воркеров
        queue: очередь задач, общая для всех воркеров
    """

    def __init__(
        self,
        worker_count: Optional[int] = None,
        engine_factory: Callable[..., RecognitionEngine] = RecognitionEngine,
        queue: Optional[TaskQueue] = None,
    ) -> None:
        self.worker_count = worker_count if worker_count is not None else settings.worker_count
        if self.worker_count < 1:
            raise ValueError(f"worker_count должен быть >= 1, получено {self.worker_count}")

        self.queue = queue or TaskQueue()
        self._engine_factory = engine_factory
        self._threads: list[threading.Thread] = []

        # Счётчики обновляются воркерами, читаются /health
        self._stats_lock = threading.Lock()
        self._processed = 0
        self._failed = 0
        self._failed_engines = 0

        self._state_lock = threading.Lock()
        self._started = False
        self._stopped = False

    # -------------------------------------------------------------------------
    # Жизненный цикл
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Запускает потоки-воркеры. Повторный вызов ничего не делает."""
        with self._state_lock:
            if self._started or self._stopped:
                return
            self._spawn_workers()

    def stop(self) -> None:
        """
        Останавливает пул и дожидается завершения всех воркеров.

        Задачи, уже стоящие в очереди, будут обработаны до выхода,
        даже если пул ещё не был запущен.
        Идемпотентно: повторный вызов ничего не делает.
        """
        with self._state_lock:
            if self._stopped:
                return
            if not self._started:
                self._spawn_workers()
            self._stopped = True

        pending = self.queue.pending()
        logger.info(f"Остановка пула, в очереди осталось задач: {pending}")

        self.queue.shutdown()
        for thread in self._threads:
            thread.join()

        logger.info("Пул остановлен")

    def _spawn_workers(self) -> None:
        # Вызывается под _state_lock
        self._started = True

        for i in range(self.worker_count):
            thread = threading.Thread(
                target=self._run_worker,
                name=f"ocr-worker-{i}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info(f"Пул запущен: {self.worker_count} воркеров")

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def submit(self, task: Task) -> None:
        """Ставит задачу в очередь (см. TaskQueue.submit)."""
        self.queue.submit(task)

    # -------------------------------------------------------------------------
    # Статистика
    # -------------------------------------------------------------------------

    def alive_workers(self) -> int:
        return sum(1 for t in self._threads if t.is_alive())

    def pending(self) -> int:
        return self.queue.pending()

    def stats(self) -> dict:
        """
        Снимок состояния пула для мониторинга.

        Returns:
            dict: размер пула, живые воркеры, очередь и счётчики задач
        """
        with self._stats_lock:
            processed = self._processed
            failed = self._failed
            failed_engines = self._failed_engines

        return {
            "worker_count": self.worker_count,
            "alive_workers": self.alive_workers(),
            "failed_engines": failed_engines,
            "pending_tasks": self.pending(),
            "processed_tasks": processed,
            "failed_tasks": failed,
        }

    # -------------------------------------------------------------------------
    # Воркер
    # -------------------------------------------------------------------------

    def _create_engine(self) -> Optional[RecognitionEngine]:
        """
        Создаёт и инициализирует движок воркера.

        Ошибка создания или инициализации не фатальна: воркер продолжит
        брать задачи, но каждая из них вернёт явный маркер ошибки вместо текста.

        Returns:
            RecognitionEngine или None, если фабрика движка упала
        """
        name = threading.current_thread().name
        engine = None

        try:
            engine = self._engine_factory(lang=settings.default_lang)
            engine.initialize()
            logger.info(f"[{name}] Движок OCR готов")
        except EngineInitError as e:
            logger.error(f"[{name}] Ошибка инициализации движка OCR: {e}")
            self._count_failed_engine()
        except Exception as e:
            logger.exception(f"[{name}] Не удалось создать движок OCR: {e}")
            self._count_failed_engine()

        return engine

    def _count_failed_engine(self) -> None:
        with self._stats_lock:
            self._failed_engines += 1

    def _run_worker(self) -> None:
        name = threading.current_thread().name
        engine = self._create_engine()

        while True:
            task = self.queue.take()
            if task is None:
                break

            logger.info(f"[{name}] Начата обработка: {task.filename}")
            text, failed = self._process_task(engine, task)

            with self._stats_lock:
                self._processed += 1
                if failed:
                    self._failed += 1

            logger.info(
                f"[{name}] Завершена обработка: {task.filename} ({len(text)} симв.)"
            )
            task.channel.put(text)

        logger.info(f"[{name}] Воркер остановлен")

    def _process_task(
        self, engine: Optional[RecognitionEngine], task: Task
    ) -> tuple[str, bool]:
        """
        Выполняет одну задачу, не выпуская исключения наружу.

        Returns:
            tuple: (текст для канала, флаг ошибки)
        """
        name = threading.current_thread().name

        try:
            image = prepare(task.image)
            if engine is None:
                raise EngineNotReady("Движок OCR не инициализирован")
            return engine.recognize(image, lang=task.lang), False
        except DecodeError as e:
            # Клиент увидит пустой текст: "ничего не распознано"
            logger.warning(f"[{name}] Не удалось прочитать изображение {task.filename}: {e}")
            return "", True
        except Exception as e:
            logger.exception(f"[{name}] Ошибка обработки {task.filename}: {e}")
            return f"{ERROR_PREFIX}{e}", True
