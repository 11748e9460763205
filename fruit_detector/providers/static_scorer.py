import numpy as np

from fruit_detector.core.errors import DetectorError
from fruit_detector.core.scorer import SimilarityScorer
from fruit_detector.core.types import TemplateDescriptor


class StaticScorer(SimilarityScorer):
    """Serves pre-computed grids keyed by template name."""

    def __init__(self, grids: dict[str, np.ndarray], scorer_id: str = 'static-v1') -> None:
        self._grids = {key: np.asarray(value, dtype=np.float64) for key, value in grids.items()}
        self._scorer_id = scorer_id

    @property
    def scorer_id(self) -> str:
        return self._scorer_id

    def score(self, source: np.ndarray, template: TemplateDescriptor) -> np.ndarray:
        _ = source
        grid = self._grids.get(template.display_name)
        if grid is None:
            raise DetectorError(
                'SCORING_FAILED',
                f'No similarity grid registered for template {template.display_name!r}.',
                status_code=422,
                details={'template': template.display_name},
            )
        return grid
