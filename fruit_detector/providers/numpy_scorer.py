import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from fruit_detector.core.errors import DetectorError
from fruit_detector.core.scorer import SimilarityScorer, check_template_fits
from fruit_detector.core.types import TemplateDescriptor


def _box_sums(values: np.ndarray, height: int, width: int) -> np.ndarray:
    """Sum of every height x width window, from an integral image."""
    integral = np.zeros((values.shape[0] + 1, values.shape[1] + 1), dtype=np.float64)
    integral[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)
    return integral[height:, width:] - integral[:-height, width:] - integral[height:, :-width] + integral[:-height, :-width]


class NumpyScorer(SimilarityScorer):
    """Zero-mean normalized cross-correlation, the TM_CCOEFF_NORMED formula.

    Placements where either the template or the image patch is flat have no
    defined correlation and score 0. Window sums come from integral images,
    so memory stays proportional to the source size.
    """

    def __init__(self, eps: float = 1e-9) -> None:
        self._eps = eps

    @property
    def scorer_id(self) -> str:
        return 'numpy-ncc'

    def score(self, source: np.ndarray, template: TemplateDescriptor) -> np.ndarray:
        check_template_fits(source, template)
        try:
            return self._correlate(np.asarray(source, dtype=np.float64), np.asarray(template.raster, dtype=np.float64))
        except ValueError as exc:
            raise DetectorError(
                'SCORING_FAILED',
                f'Could not score template {template.display_name!r}: {exc}',
                status_code=422,
                details={'template': template.display_name},
            ) from exc

    def _correlate(self, image: np.ndarray, tmpl: np.ndarray) -> np.ndarray:
        height, width = tmpl.shape
        count = tmpl.size
        tmpl = tmpl - tmpl.mean()
        tmpl_norm = np.sqrt(np.sum(tmpl * tmpl))

        # zero-mean template, so raw patches give the mean-centred correlation
        numerator = np.einsum('ijkl,kl->ij', sliding_window_view(image, (height, width)), tmpl)
        patch_sum = _box_sums(image, height, width)
        patch_ss = np.maximum(_box_sums(image * image, height, width) - patch_sum * patch_sum / count, 0.0)
        denominator = np.sqrt(patch_ss) * tmpl_norm

        grid = np.zeros(numerator.shape, dtype=np.float64)
        np.divide(numerator, denominator, out=grid, where=denominator > self._eps)
        return np.clip(grid, -1.0, 1.0)
