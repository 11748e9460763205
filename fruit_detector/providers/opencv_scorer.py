import cv2
import numpy as np

from fruit_detector.core.errors import DetectorError
from fruit_detector.core.scorer import SimilarityScorer, check_template_fits
from fruit_detector.core.types import TemplateDescriptor


class OpenCvScorer(SimilarityScorer):
    def __init__(self, method: int = cv2.TM_CCOEFF_NORMED) -> None:
        self._method = method

    @property
    def scorer_id(self) -> str:
        return 'opencv-ccoeff-normed'

    def score(self, source: np.ndarray, template: TemplateDescriptor) -> np.ndarray:
        check_template_fits(source, template)
        try:
            result = cv2.matchTemplate(
                np.ascontiguousarray(source, dtype=np.uint8),
                np.ascontiguousarray(template.raster, dtype=np.uint8),
                self._method,
            )
        except cv2.error as exc:
            raise DetectorError(
                'SCORING_FAILED',
                f'OpenCV could not score template {template.display_name!r}.',
                status_code=422,
                details={'template': template.display_name},
            ) from exc
        return result
