from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from fruit_detector.core.errors import DetectorError


def load_image_from_bytes(image_bytes: bytes, max_bytes: int) -> Image.Image:
    if not image_bytes:
        raise DetectorError('MISSING_IMAGE', 'Missing image upload (field name: image).', status_code=400)
    if len(image_bytes) > max_bytes:
        raise DetectorError('IMAGE_TOO_LARGE', f'Image too large. Max {max_bytes} bytes.', status_code=413)

    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise DetectorError('IMAGE_DECODE_FAILED', 'Could not decode image.', status_code=400) from exc
    return image


def load_image_from_path(path: str | Path) -> Image.Image:
    file_path = Path(path)
    if not file_path.is_file():
        raise DetectorError(
            'SOURCE_IMAGE_UNAVAILABLE',
            f'Source image not found: {file_path.as_posix()}',
            status_code=400,
        )
    try:
        image = Image.open(file_path)
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise DetectorError(
            'SOURCE_IMAGE_UNAVAILABLE',
            f'Could not decode source image: {file_path.as_posix()}',
            status_code=400,
        ) from exc
    return image


def to_grayscale_array(image: Image.Image) -> np.ndarray:
    if image.mode != 'L':
        image = image.convert('L')
    return np.asarray(image, dtype=np.uint8)


def raster_to_grayscale(raster) -> np.ndarray:
    """Coerce a 2D, (H, W, 1), RGB or RGBA array into a 2D uint8 raster.

    Raises ValueError for anything that is not an image-shaped array.
    """
    array = np.asarray(raster)
    if array.ndim == 3 and array.shape[2] == 1:
        array = array[:, :, 0]
    if array.ndim == 3:
        if array.shape[2] not in (3, 4) or array.size == 0:
            raise ValueError(f'Unsupported channel layout (shape={array.shape}).')
        array = to_grayscale_array(Image.fromarray(np.clip(array, 0, 255).astype(np.uint8)))
    if array.ndim != 2:
        raise ValueError(f'Raster must be 2D (shape={array.shape}).')
    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)
    return array
