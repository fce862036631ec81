"""
Предобработка изображения перед OCR.

Фиксированный пайплайн, одинаковый для каждой задачи:
    1. decode: байты -> PIL.Image
    2. to_grayscale: 8-битный grayscale ("L")
    3. enhance_contrast: гамма-кривая с чёрной и белой точками

Порядок шагов и параметры не настраиваются клиентом.
"""

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from ocr_pool.exceptions import DecodeError

# Параметры гамма-кривой
GAMMA = 1.2
BLACK_POINT = 50
WHITE_POINT = 180


def decode(data: bytes) -> Image.Image:
    """
    Декодирует байты в изображение.

    Изображение загружается полностью (load), чтобы ошибки формата
    проявились здесь, а не позже внутри Tesseract.

    Args:
        data: сырые байты файла (PNG, JPEG, BMP, TIFF, ...)

    Returns:
        Image.Image: декодированное изображение

    Raises:
        DecodeError: пустые, повреждённые, неподдерживаемые или
            слишком большие (decompression bomb) данные
    """
    if not data:
        raise DecodeError("Пустые данные изображения")

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise DecodeError(f"Не удалось декодировать изображение: {e}") from e

    return image


def to_grayscale(image: Image.Image) -> Image.Image:
    """Приводит изображение к 8-битному grayscale."""
    if image.mode == "L":
        return image
    return image.convert("L")


def _gamma_lut(gamma: float, black_point: int, white_point: int) -> list[int]:
    """
    Строит таблицу преобразования 256 значений.

    Ниже black_point -> 0, выше white_point -> 255,
    между ними 255 * x ** (1 / gamma), где x нормирован в [0, 1].
    """
    levels = np.arange(256, dtype=np.float64)
    x = np.clip((levels - black_point) / (white_point - black_point), 0.0, 1.0)
    lut = np.floor(255.0 * np.power(x, 1.0 / gamma) + 0.5)
    return lut.astype(np.uint8).tolist()


def enhance_contrast(
    image: Image.Image,
    gamma: float = GAMMA,
    black_point: int = BLACK_POINT,
    white_point: int = WHITE_POINT,
) -> Image.Image:
    """
    Усиливает контраст grayscale изображения гамма-кривой.

    Args:
        image: изображение в режиме "L"
        gamma: показатель гаммы (> 0), значения > 1 осветляют средние тона
        black_point: уровень, ниже которого пиксель становится чёрным
        white_point: уровень, выше которого пиксель становится белым

    Returns:
        Image.Image: новое изображение в режиме "L"

    Raises:
        ValueError: некорректные параметры кривой
    """
    if gamma <= 0:
        raise ValueError(f"gamma должна быть > 0, получено {gamma}")
    if not 0 <= black_point < white_point <= 255:
        raise ValueError(
            f"Нужно 0 <= black_point < white_point <= 255, "
            f"получено {black_point}, {white_point}"
        )

    gray = to_grayscale(image)
    return gray.point(_gamma_lut(gamma, black_point, white_point))


def prepare(data: bytes) -> Image.Image:
    """
    Полный пайплайн: decode -> grayscale -> контраст.

    Args:
        data: сырые байты изображения

    Returns:
        Image.Image: изображение, готовое для Tesseract

    Raises:
        DecodeError: если байты не являются изображением
    """
    image = decode(data)
    gray = to_grayscale(image)
    return enhance_contrast(gray)
