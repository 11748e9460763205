from abc import ABC, abstractmethod

import numpy as np

from fruit_detector.config import Settings
from fruit_detector.core.errors import DetectorError
from fruit_detector.core.types import TemplateDescriptor


class SimilarityScorer(ABC):
    """Scores every top-left placement of a template over a source raster.

    The grid has shape ``(H - h + 1, W - w + 1)`` and values normalized to
    [-1, 1], larger meaning a better match.
    """

    @abstractmethod
    def score(self, source: np.ndarray, template: TemplateDescriptor) -> np.ndarray:
        raise NotImplementedError

    @property
    @abstractmethod
    def scorer_id(self) -> str:
        raise NotImplementedError


def check_template_fits(source: np.ndarray, template: TemplateDescriptor) -> None:
    source_height, source_width = source.shape[:2]
    if template.width > source_width or template.height > source_height:
        raise DetectorError(
            'TEMPLATE_TOO_LARGE',
            f'Template {template.display_name!r} ({template.width}x{template.height}) '
            f'exceeds source ({source_width}x{source_height}).',
            status_code=422,
            details={'template': template.display_name},
        )


def create_scorer(settings: Settings) -> SimilarityScorer:
    name = settings.scorer.strip().lower()
    if name == 'opencv':
        from fruit_detector.providers.opencv_scorer import OpenCvScorer

        return OpenCvScorer()
    if name == 'numpy':
        from fruit_detector.providers.numpy_scorer import NumpyScorer

        return NumpyScorer()
    raise ValueError(f'Unsupported SCORER={settings.scorer!r}')
