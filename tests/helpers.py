from pathlib import Path

import numpy as np
from PIL import Image


def make_noise(width: int, height: int, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width), dtype=np.uint8)


def plant(source: np.ndarray, patch: np.ndarray, x: int, y: int) -> np.ndarray:
    out = source.copy()
    out[y:y + patch.shape[0], x:x + patch.shape[1]] = patch
    return out


def save_png(array: np.ndarray, path: Path) -> Path:
    Image.fromarray(array).save(path, format='PNG')
    return path


def png_bytes(array: np.ndarray) -> bytes:
    from io import BytesIO

    buffer = BytesIO()
    Image.fromarray(array).save(buffer, format='PNG')
    return buffer.getvalue()
