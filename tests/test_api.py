"""
Тесты HTTP API через FastAPI TestClient.

Пул воркеров подменяется на пул с FakeEngine через build_pool.
"""

import time
from functools import partial

import pytesseract
import pytest
from fastapi.testclient import TestClient

from ocr_pool import main
from ocr_pool.client import RecognitionClient
from ocr_pool.config import settings
from ocr_pool.services.recognition import TIMEOUT_MESSAGE
from ocr_pool.services.worker_pool import WorkerPool
from tests.conftest import FakeEngine


@pytest.fixture
def engine_options() -> dict:
    return {"text": "hello"}


@pytest.fixture
def client(monkeypatch, engine_options):
    monkeypatch.setattr(
        main,
        "build_pool",
        lambda: WorkerPool(worker_count=2, engine_factory=partial(FakeEngine, **engine_options)),
    )
    with TestClient(main.app) as test_client:
        yield test_client


def _post(client, image: bytes, **form):
    data = {"client_id": "session_1", "batch_id": "0", **form}
    return client.post(
        "/ocr/process",
        files={"image": ("scan.png", image, "image/png")},
        data=data,
    )


def test_process_image(client, white_png):
    response = _post(client, white_png)

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["text"] == "hello"
    assert body["message"] == ""
    assert body["processing_time_ms"] >= 0


@pytest.mark.parametrize("engine_options", [{"text": "Привет, мир"}])
def test_unicode_text_not_escaped(client, white_png):
    response = _post(client, white_png)

    assert "Привет, мир".encode("utf-8") in response.content
    assert response.json()["text"] == "Привет, мир"


def test_broken_image_is_ok_with_empty_text(client):
    body = _post(client, b"garbage bytes").json()

    assert body["ok"] is True
    assert body["text"] == ""


@pytest.mark.parametrize("engine_options", [{"delay": 0.5}])
def test_timeout_from_form(client, white_png):
    body = _post(client, white_png, timeout_seconds="0.05").json()

    assert body["ok"] is False
    assert body["message"] == TIMEOUT_MESSAGE


def test_invalid_timeout_rejected(client, white_png):
    response = _post(client, white_png, timeout_seconds="0")
    assert response.status_code == 422


def test_missing_image_rejected(client):
    response = client.post("/ocr/process", data={"client_id": "x"})
    assert response.status_code == 422


def test_file_too_large(client, white_png, monkeypatch):
    monkeypatch.setattr(settings, "max_file_size_mb", 0)

    response = _post(client, white_png)

    assert response.status_code == 413
    assert response.json()["detail"]["error"] == "file_too_large"


def test_health_ok(client, monkeypatch):
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["tesseract"] == {"available": True, "version": "5.3.0"}
    assert body["pool"]["worker_count"] == 2
    assert body["pool"]["failed_engines"] == 0


@pytest.mark.parametrize("engine_options", [{"fail_init": True}])
def test_health_degraded_on_engine_failure(client, white_png, monkeypatch):
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")

    text = _post(client, white_png).json()["text"]
    assert text.startswith("ERROR: ")

    # Дожидаемся, пока оба воркера попробуют инициализироваться
    deadline = time.monotonic() + 5
    while True:
        body = client.get("/health").json()
        if body["pool"]["failed_engines"] == 2 or time.monotonic() > deadline:
            break
        time.sleep(0.01)

    assert body["status"] == "degraded"
    assert body["pool"]["failed_engines"] == 2


def test_end_to_end_with_client(client, white_png):
    recognizer = RecognitionClient(base_url="http://testserver", http_client=client)

    response = recognizer.process_image("session_1", "7", "scans/scan.png", white_png)

    assert response.ok is True
    assert response.text == "hello"
