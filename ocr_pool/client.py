"""
Клиент OCR Pool Service.

Содержит:
    - RecognitionClient: один удалённый вызов с дедлайном, ошибки
      транспорта превращаются в ответ ok=False
    - BatchSubmitter: пакетная отправка файлов через ограниченный пул
      потоков с явным ожиданием и закрытием
    - ProgressCounter: потокобезопасный счётчик прогресса пакета
    - preview_text: подготовка текста к показу пользователю

Запуск:
    python -m ocr_pool.client --url http://localhost:50051 scan1.png scan2.jpg
"""

import argparse
import logging
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, Optional, Union

import httpx

from ocr_pool.schemas import DEFAULT_LANG, ProcessImageResponse

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:50051"
DEFAULT_TIMEOUT_SECONDS = 120.0
PREVIEW_LIMIT = 350


class RecognitionClient:
    """
    Обёртка над HTTP вызовом /ocr/process.

    Никогда не выбрасывает исключения транспорта: любой сбой
    возвращается как ProcessImageResponse(ok=False, message=...).
    Повторных попыток нет.

    Attributes:
        base_url: адрес сервиса
        timeout_seconds: дедлайн по умолчанию для каждого вызова
    """

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "RecognitionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def process_image(
        self,
        client_id: str,
        batch_id: str,
        filename: str,
        image: bytes,
        lang: str = DEFAULT_LANG,
        timeout_seconds: Optional[float] = None,
    ) -> ProcessImageResponse:
        """
        Отправляет изображение на распознавание и ждёт ответ.

        Один и тот же дедлайн передаётся серверу (ожидание в очереди)
        и используется как таймаут HTTP запроса. Таймауты httpx действуют
        на каждую фазу отдельно (connect, write, read), поэтому ответ,
        пришедший позже общего дедлайна, тоже считается ошибкой.

        Args:
            client_id: идентификатор сессии
            batch_id: идентификатор группы
            filename: имя файла
            image: байты изображения
            lang: язык распознавания
            timeout_seconds: дедлайн (None: дедлайн клиента)

        Returns:
            ProcessImageResponse: ответ сервера или ok=False при сбое
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        deadline = time.monotonic() + timeout

        files = {"image": (Path(filename).name or "image", image, "application/octet-stream")}
        data = {
            "client_id": client_id,
            "batch_id": batch_id,
            "filename": filename,
            "lang": lang,
            "timeout_seconds": str(timeout),
        }

        try:
            response = self._http.post(
                f"{self.base_url}/ocr/process",
                files=files,
                data=data,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Дедлайн вызова истёк: {filename}")
            return ProcessImageResponse(ok=False, message=f"Deadline exceeded: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Ошибка транспорта: {filename}: {e}")
            return ProcessImageResponse(ok=False, message=str(e) or type(e).__name__)

        if time.monotonic() > deadline:
            logger.warning(f"Ответ пришёл после дедлайна: {filename}")
            return ProcessImageResponse(
                ok=False,
                message=f"Deadline exceeded: no response within {timeout} s",
            )

        if response.status_code != 200:
            return ProcessImageResponse(
                ok=False,
                message=f"Server returned {response.status_code}: {response.text}",
            )

        try:
            return ProcessImageResponse.model_validate(response.json())
        except ValueError as e:
            # JSONDecodeError и ValidationError: ответил не наш сервис
            logger.error(f"Некорректный ответ сервера: {filename}: {e}")
            return ProcessImageResponse(ok=False, message=f"Invalid server response: {e}")


def load_image(path: Union[str, Path]) -> bytes:
    """Читает файл целиком. Ошибки чтения пробрасываются как OSError."""
    return Path(path).read_bytes()


def preview_text(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """
    Готовит распознанный текст к показу.

    Оставляет только буквы и пробельные символы, длинный текст
    обрезается до limit символов с суффиксом "...".
    """
    filtered = "".join(ch for ch in text if ch.isalpha() or ch.isspace())
    if len(filtered) > limit:
        return filtered[:limit] + "..."
    return filtered


class ProgressCounter:
    """
    Потокобезопасный прогресс пакетной обработки.

    Пишут потоки отправки, читает отображение прогресса.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._completed = 0

    def add_total(self, count: int) -> None:
        with self._lock:
            self._total += count

    def mark_done(self) -> None:
        with self._lock:
            self._completed += 1

    def reset(self) -> None:
        with self._lock:
            self._total = 0
            self._completed = 0

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def percent(self) -> int:
        """Процент выполнения, не больше 100 (0 если задач нет)."""
        with self._lock:
            if self._total == 0:
                return 0
            return min(100, int(self._completed * 100 / self._total))

    def finished(self) -> bool:
        with self._lock:
            return self._completed >= self._total


class BatchSubmitter:
    """
    Пакетная отправка файлов на распознавание.

    Вызовы выполняются в ограниченном пуле потоков. Все запросы
    в полёте отслеживаются: их можно дождаться через wait()
    или отменить ещё не начатые через close(cancel=True).

    Attributes:
        client_id: идентификатор сессии, прикладывается к каждому вызову
        progress: прогресс всех отправленных файлов
    """

    def __init__(
        self,
        client: RecognitionClient,
        client_id: str = "session_1",
        max_in_flight: int = 4,
        lang: str = DEFAULT_LANG,
    ) -> None:
        self.client = client
        self.client_id = client_id
        self.lang = lang
        self.progress = ProgressCounter()

        self._executor = ThreadPoolExecutor(
            max_workers=max_in_flight,
            thread_name_prefix="ocr-client",
        )
        self._futures: list[Future] = []
        self._lock = threading.Lock()
        self._batch_seq = 0
        self._closed = False

    def submit_files(self, paths: Iterable[Union[str, Path]]) -> list[Future]:
        """
        Ставит файлы на отправку.

        Каждый вызов submit_files получает свой batch_id.

        Args:
            paths: пути к изображениям

        Returns:
            list[Future]: по одному Future[ProcessImageResponse] на файл

        Raises:
            RuntimeError: если BatchSubmitter уже закрыт
        """
        paths = [Path(p) for p in paths]

        with self._lock:
            if self._closed:
                raise RuntimeError("BatchSubmitter закрыт, новые файлы не принимаются")

            batch_id = str(self._batch_seq)
            self._batch_seq += 1

            self.progress.add_total(len(paths))
            futures = [
                self._executor.submit(self._process_file, batch_id, path)
                for path in paths
            ]
            self._futures.extend(futures)

        logger.info(f"Пакет {batch_id}: отправлено файлов {len(paths)}")
        return futures

    def _process_file(self, batch_id: str, path: Path) -> ProcessImageResponse:
        try:
            try:
                image = load_image(path)
            except OSError as e:
                logger.warning(f"Не удалось прочитать файл {path}: {e}")
                return ProcessImageResponse(ok=False, message="Failed to read file")

            return self.client.process_image(
                self.client_id,
                batch_id,
                str(path),
                image,
                lang=self.lang,
            )
        finally:
            self.progress.mark_done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Ждёт завершения всех отправленных файлов.

        Returns:
            bool: True если все вызовы завершились до timeout
        """
        with self._lock:
            futures = list(self._futures)
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def close(self, cancel: bool = False) -> None:
        """Закрывает пул; cancel=True отменяет ещё не начатые вызовы."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True, cancel_futures=cancel)

    def __enter__(self) -> "BatchSubmitter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def format_result(path: Union[str, Path], response: ProcessImageResponse) -> str:
    """Строка результата для вывода в консоль."""
    if response.ok:
        return f"{path}: Completed ({response.processing_time_ms} ms) {preview_text(response.text)!r}"
    return f"{path}: Error: {response.message}"


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ocr-pool-client",
        description="Отправка изображений в OCR Pool Service",
    )
    parser.add_argument("files", nargs="+", help="Файлы изображений")
    parser.add_argument("--url", default=DEFAULT_URL, help="Адрес сервиса")
    parser.add_argument("--client-id", default="session_1", help="Идентификатор сессии")
    parser.add_argument("--lang", default=DEFAULT_LANG, help="Язык Tesseract")
    parser.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Дедлайн, секунды"
    )
    parser.add_argument(
        "--parallel", type=int, default=4, help="Максимум одновременных запросов"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [OCR-Client] %(message)s",
        datefmt="%H:%M:%S",
    )

    with RecognitionClient(args.url, timeout_seconds=args.timeout) as client:
        with BatchSubmitter(
            client,
            client_id=args.client_id,
            max_in_flight=args.parallel,
            lang=args.lang,
        ) as submitter:
            futures = submitter.submit_files(args.files)
            responses = [f.result() for f in futures]

    failed = 0
    for path, response in zip(args.files, responses):
        print(format_result(path, response))
        if not response.ok:
            failed += 1

    print(f"Обработано: {len(responses)}, ошибок: {failed}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
