import logging
from typing import Sequence

import numpy as np
from PIL import Image

from fruit_detector.config import Settings
from fruit_detector.core.errors import DetectorError
from fruit_detector.core.extractor import extract_candidates
from fruit_detector.core.nms import NmsPolicy, suppress
from fruit_detector.core.scorer import SimilarityScorer
from fruit_detector.core.templates import resolve_template
from fruit_detector.core.types import (
    Detection,
    DetectionResult,
    TemplateAsset,
    TemplateDescriptor,
    TemplateWarning,
)
from fruit_detector.utils.image_io import raster_to_grayscale, to_grayscale_array
from fruit_detector.utils.timings import measure_ms

logger = logging.getLogger('fruit_detector.aggregator')


def _as_source_array(source) -> np.ndarray:
    if source is None:
        raise DetectorError('SOURCE_IMAGE_UNAVAILABLE', 'Source image is unavailable.', status_code=400)
    if isinstance(source, Image.Image):
        array = to_grayscale_array(source)
    else:
        try:
            array = raster_to_grayscale(source)
        except (TypeError, ValueError) as exc:
            raise DetectorError(
                'SOURCE_IMAGE_UNAVAILABLE',
                f'Source image is not a usable raster: {exc}',
                status_code=400,
            ) from exc
    if array.size == 0:
        raise DetectorError(
            'SOURCE_IMAGE_UNAVAILABLE',
            f'Source image is empty (shape={array.shape}).',
            status_code=400,
        )
    return array


class DetectionAggregator:
    """Runs scoring, extraction and NMS per template and merges the survivors.

    NMS is scoped to one template's candidates, so overlapping boxes from
    different templates (even with the same label) are never merged. Output
    keeps template order, then selection order within a template.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        score_threshold: float = 0.6,
        iou_threshold: float = 0.5,
        nms_policy: NmsPolicy | str = NmsPolicy.SCORE_SORTED,
    ) -> None:
        self._scorer = scorer
        self._score_threshold = float(score_threshold)
        self._iou_threshold = float(iou_threshold)
        self._nms_policy = NmsPolicy(nms_policy)

    @classmethod
    def from_settings(cls, settings: Settings, scorer: SimilarityScorer) -> 'DetectionAggregator':
        return cls(
            scorer=scorer,
            score_threshold=settings.score_threshold,
            iou_threshold=settings.iou_threshold,
            nms_policy=settings.nms_policy,
        )

    @property
    def scorer(self) -> SimilarityScorer:
        return self._scorer

    @property
    def nms_policy(self) -> NmsPolicy:
        return self._nms_policy

    def detect(self, source, templates: Sequence[TemplateDescriptor | TemplateAsset]) -> DetectionResult:
        image = _as_source_array(source)
        source_size = (int(image.shape[1]), int(image.shape[0]))
        detections: list[Detection] = []
        warnings: list[TemplateWarning] = []

        with measure_ms() as elapsed_ms:
            for template in templates:
                try:
                    descriptor = resolve_template(template, source_size)
                    grid = self._scorer.score(image, descriptor)
                except DetectorError as exc:
                    name = getattr(template, 'path', None) or getattr(template, 'name', None) or template.label
                    logger.warning(
                        'Skipping template=%s label=%s code=%s message=%s', name, template.label, exc.code, exc.message
                    )
                    warnings.append(TemplateWarning(template=name, label=template.label, code=exc.code, message=exc.message))
                    continue

                candidates = extract_candidates(
                    grid,
                    descriptor.width,
                    descriptor.height,
                    descriptor.label,
                    threshold=self._score_threshold,
                    source_size=source_size,
                )
                survivors = suppress(candidates, self._iou_threshold, self._nms_policy)
                for survivor in survivors:
                    logger.info(
                        'Detected label=%s x=%s y=%s score=%.4f',
                        survivor.label,
                        survivor.box.x,
                        survivor.box.y,
                        survivor.score,
                    )
                detections.extend(Detection.from_candidate(item) for item in survivors)
                logger.debug(
                    'template=%s label=%s candidates=%s survivors=%s',
                    descriptor.display_name,
                    descriptor.label,
                    len(candidates),
                    len(survivors),
                )
            latency_ms = elapsed_ms()

        logger.info('Detected objects total=%s skipped_templates=%s', len(detections), len(warnings))
        return DetectionResult(
            detections=tuple(detections),
            scorer_id=self._scorer.scorer_id,
            latency_ms=max(latency_ms, 1),
            image_size=source_size,
            warnings=tuple(warnings),
        )
