import io
import random

import pytest
from PIL import Image


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def small_png_bytes() -> bytes:
    """A 64x48 plain white PNG, far below any budget."""
    return _png_bytes(Image.new("RGB", (64, 48), "white"))


@pytest.fixture()
def wide_png_bytes() -> bytes:
    """A 3000x1500 image with some text-like strokes on it."""
    img = Image.new("RGB", (3000, 1500), "white")
    for x in range(0, 3000, 40):
        for y in range(0, 1500, 60):
            img.paste((20, 20, 20), (x, y, x + 25, y + 4))
    return _png_bytes(img)


@pytest.fixture()
def noise_png_bytes() -> bytes:
    """Random noise, which JPEG cannot compress well."""
    rng = random.Random(1234)
    w, h = 400, 300
    data = bytes(rng.getrandbits(8) for _ in range(w * h * 3))
    return _png_bytes(Image.frombytes("RGB", (w, h), data))


@pytest.fixture()
def rgba_png_bytes() -> bytes:
    return _png_bytes(Image.new("RGBA", (120, 80), (255, 0, 0, 128)))
