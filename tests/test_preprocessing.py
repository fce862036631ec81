"""
Тесты предобработки: decode, grayscale, гамма-кривая.
"""

import pytest
from PIL import Image

from ocr_pool.exceptions import DecodeError
from ocr_pool.services.preprocessing import decode, enhance_contrast, prepare, to_grayscale
from tests.conftest import make_image_bytes


def test_decode_png(white_png):
    image = decode(white_png)

    assert image.size == (10, 10)
    assert image.mode == "RGB"


def test_decode_jpeg():
    image = decode(make_image_bytes(size=(32, 16), fmt="JPEG"))
    assert image.size == (32, 16)


@pytest.mark.parametrize("data", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\n\x00\x00"])
def test_decode_rejects_garbage(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_rejects_truncated_file():
    data = make_image_bytes(size=(200, 200), color="red")
    with pytest.raises(DecodeError):
        decode(data[: len(data) // 2])


def test_to_grayscale():
    rgb = Image.new("RGB", (4, 4), (255, 0, 0))
    gray = to_grayscale(rgb)

    assert gray.mode == "L"
    assert to_grayscale(gray) is gray


def test_enhance_contrast_curve():
    gray = Image.new("L", (6, 1))
    gray.putdata([0, 50, 51, 115, 180, 255])

    result = list(enhance_contrast(gray).getdata())

    mid = int(255 * (0.5 ** (1 / 1.2)) + 0.5)
    assert result[0] == 0
    assert result[1] == 0
    assert 0 < result[2] < mid
    assert result[3] == mid
    assert result[4] == 255
    assert result[5] == 255


@pytest.mark.parametrize(
    "kwargs",
    [
        {"gamma": 0},
        {"gamma": -1.0},
        {"black_point": 180, "white_point": 50},
        {"black_point": 100, "white_point": 100},
        {"white_point": 300},
    ],
)
def test_enhance_contrast_rejects_bad_curve(kwargs):
    with pytest.raises(ValueError):
        enhance_contrast(Image.new("L", (2, 2)), **kwargs)


def test_prepare_white_square(white_png):
    image = prepare(white_png)

    assert image.mode == "L"
    assert image.size == (10, 10)
    assert set(image.getdata()) == {255}


def test_prepare_rgba_and_la():
    for mode, color in (("RGBA", (10, 20, 30, 255)), ("LA", (128, 255))):
        image = prepare(make_image_bytes(size=(8, 8), color=color, mode=mode))
        assert image.mode == "L"


def test_decode_rejects_decompression_bomb(monkeypatch):
    data = make_image_bytes(size=(10, 10))
    # 100 пикселей больше удвоенного лимита: Pillow бросает DecompressionBombError
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 20)

    with pytest.raises(DecodeError):
        decode(data)
