"""
Тесты канала результата: однократная запись, таймаут, поздняя запись.
"""

import threading
import time

import pytest

from ocr_pool.exceptions import ResultTimeout
from ocr_pool.services.result_channel import ResultChannel


def test_put_then_wait():
    channel = ResultChannel()
    assert channel.fulfilled_at is None

    assert channel.put("text") is True
    assert channel.done()
    assert channel.wait(timeout=0) == "text"
    assert channel.fulfilled_at <= time.monotonic()


def test_second_put_is_ignored():
    channel = ResultChannel()
    channel.put("first")
    fulfilled_at = channel.fulfilled_at

    assert channel.put("second") is False
    assert channel.wait() == "first"
    assert channel.fulfilled_at == fulfilled_at


def test_wait_times_out():
    channel = ResultChannel()
    start = time.monotonic()

    with pytest.raises(ResultTimeout):
        channel.wait(timeout=0.1)

    elapsed = time.monotonic() - start
    assert 0.09 <= elapsed < 1.0


def test_put_after_reader_abandoned():
    channel = ResultChannel()
    with pytest.raises(ResultTimeout):
        channel.wait(timeout=0.01)

    assert channel.put("late") is True
    assert channel.done()


def test_reader_woken_from_other_thread():
    channel = ResultChannel()
    writer = threading.Timer(0.05, channel.put, args=("from worker",))
    writer.start()

    assert channel.wait(timeout=2) == "from worker"
    writer.join()
