import json
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from fruit_detector.core.errors import TemplateLoadError
from fruit_detector.core.types import TemplateAsset, TemplateDescriptor
from fruit_detector.utils.image_io import raster_to_grayscale

logger = logging.getLogger('fruit_detector.templates')

OVERSIZE_SHRINK_RATIO = 0.5


def load_template_raster(path: str | Path) -> np.ndarray:
    file_path = Path(path)
    if not file_path.is_file():
        raise TemplateLoadError(file_path.as_posix(), f'Template image not found: {file_path.as_posix()}')
    try:
        with Image.open(file_path) as image:
            raster = np.asarray(image.convert('L'), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as exc:
        raise TemplateLoadError(file_path.as_posix(), f'Could not decode template image: {file_path.as_posix()}') from exc
    if raster.size == 0:
        raise TemplateLoadError(file_path.as_posix(), f'Template image is empty: {file_path.as_posix()}')
    return raster


def fit_template_to_source(raster: np.ndarray, source_size: tuple[int, int]) -> np.ndarray:
    """Shrink a template that does not fit the source to half the source size."""
    source_width, source_height = source_size
    height, width = raster.shape[:2]
    if width <= source_width and height <= source_height:
        return raster
    new_size = (
        max(1, int(source_width * OVERSIZE_SHRINK_RATIO)),
        max(1, int(source_height * OVERSIZE_SHRINK_RATIO)),
    )
    logger.info('Resizing oversized template from=%sx%s to=%sx%s', width, height, new_size[0], new_size[1])
    resized = Image.fromarray(np.asarray(raster, dtype=np.uint8)).resize(new_size, Image.Resampling.BILINEAR)
    return np.asarray(resized, dtype=np.uint8)


def resolve_template(template: TemplateDescriptor | TemplateAsset, source_size: tuple[int, int]) -> TemplateDescriptor:
    if isinstance(template, TemplateAsset):
        raster = load_template_raster(template.path)
        name = template.path
    else:
        raster = template.raster
        name = template.name
    if raster is None or np.asarray(raster).size == 0:
        raise TemplateLoadError(name or template.label, f'Template for label {template.label!r} has no pixels.')
    try:
        raster = raster_to_grayscale(raster)
    except (TypeError, ValueError) as exc:
        raise TemplateLoadError(
            name or template.label,
            f'Template for label {template.label!r} is not a usable raster: {exc}',
        ) from exc
    return TemplateDescriptor(raster=fit_template_to_source(raster, source_size), label=template.label, name=name)


class TemplateCatalog:
    """Template list read from a JSON manifest of ``{"path", "label"}`` rows.

    Relative paths resolve against the manifest's directory. Entries are not
    opened here, so a broken asset only fails its own template at detect time.
    """

    def __init__(self, path: str):
        self._path = Path(path)
        self._assets = self._load_assets(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def size(self) -> int:
        return len(self._assets)

    @property
    def assets(self) -> list[TemplateAsset]:
        return list(self._assets)

    @property
    def labels(self) -> list[str]:
        seen: dict[str, None] = {}
        for asset in self._assets:
            seen.setdefault(asset.label, None)
        return list(seen)

    def _load_assets(self, path: Path) -> list[TemplateAsset]:
        if not path.exists():
            logger.warning('Template manifest not found path=%s', path.as_posix())
            return []
        raw = json.loads(path.read_text(encoding='utf-8'))
        if not isinstance(raw, list):
            raise ValueError(f'Template manifest must be a JSON list: {path.as_posix()}')

        base_dir = path.parent
        assets: list[TemplateAsset] = []
        for index, row in enumerate(raw):
            if not isinstance(row, dict):
                raise ValueError(f'Manifest entry {index} must be an object.')
            raw_path = str(row.get('path') or '').strip()
            label = str(row.get('label') or '').strip()
            if not raw_path or not label:
                raise ValueError(f'Manifest entry {index} needs both "path" and "label".')
            asset_path = Path(raw_path)
            if not asset_path.is_absolute():
                asset_path = base_dir / asset_path
            assets.append(TemplateAsset(path=asset_path.as_posix(), label=label))
        return assets
