import io
import logging
import time
import uuid

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from fruit_detector.config import get_settings
from fruit_detector.core.aggregator import DetectionAggregator
from fruit_detector.core.errors import DetectorError
from fruit_detector.core.nms import NmsPolicy
from fruit_detector.core.postprocess import count_by_label
from fruit_detector.core.render import LabelPalette, render_detections
from fruit_detector.core.scorer import create_scorer
from fruit_detector.core.templates import TemplateCatalog
from fruit_detector.core.types import DetectionResult
from fruit_detector.logging_setup import setup_logging
from fruit_detector.schemas import DetectResponse, ErrorResponse, HealthResponse
from fruit_detector.utils.image_io import load_image_from_bytes

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger('fruit_detector')

app = FastAPI(title='Fruit Template Detector', version=settings.version)
started_at = time.time()


@app.on_event('startup')
def startup_event() -> None:
    scorer = create_scorer(settings)
    catalog = TemplateCatalog(settings.templates_manifest_path)
    app.state.scorer = scorer
    app.state.aggregator = DetectionAggregator.from_settings(settings, scorer)
    app.state.catalog = catalog
    app.state.palette = LabelPalette(settings.label_colors, settings.fallback_color)
    logger.info(
        'Detector initialized scorer=%s score_threshold=%s iou_threshold=%s nms_policy=%s',
        scorer.scorer_id,
        settings.score_threshold,
        settings.iou_threshold,
        settings.nms_policy.value,
    )
    logger.info('Template catalog loaded path=%s size=%s labels=%s', catalog.path.as_posix(), catalog.size, catalog.labels)


def _aggregator_for_request(
    score_threshold: float | None,
    iou_threshold: float | None,
    nms_policy: str | None,
) -> DetectionAggregator:
    base: DetectionAggregator = app.state.aggregator
    if score_threshold is None and iou_threshold is None and not nms_policy:
        return base
    try:
        policy = NmsPolicy(nms_policy) if nms_policy else base.nms_policy
    except ValueError as exc:
        raise DetectorError(
            'INVALID_NMS_POLICY',
            f'Unsupported nms_policy={nms_policy!r}. Use one of {[p.value for p in NmsPolicy]}.',
            status_code=400,
        ) from exc
    return DetectionAggregator(
        scorer=base.scorer,
        score_threshold=settings.score_threshold if score_threshold is None else score_threshold,
        iou_threshold=settings.iou_threshold if iou_threshold is None else iou_threshold,
        nms_policy=policy,
    )


async def _run_detection(
    image: UploadFile,
    score_threshold: float | None,
    iou_threshold: float | None,
    nms_policy: str | None,
):
    image_bytes = await image.read()
    img = load_image_from_bytes(image_bytes, settings.max_image_bytes)
    aggregator = _aggregator_for_request(score_threshold, iou_threshold, nms_policy)
    catalog: TemplateCatalog = app.state.catalog
    result = aggregator.detect(img, catalog.assets)
    return img, result, len(image_bytes)


def _to_response(result: DetectionResult) -> DetectResponse:
    return DetectResponse(
        ok=True,
        scorer=result.scorer_id,
        latency_ms=result.latency_ms,
        image_size=result.image_size,
        count=result.count,
        counts=count_by_label(result.detections),
        detections=[
            {
                'label': d.label,
                'score': round(d.score, 4) if d.score is not None else None,
                'box': {'x': d.box.x, 'y': d.box.y, 'width': d.box.width, 'height': d.box.height},
            }
            for d in result.detections
        ],
        warnings=[
            {'template': w.template, 'label': w.label, 'code': w.code, 'message': w.message}
            for w in result.warnings
        ],
    )


@app.exception_handler(DetectorError)
async def detector_error_handler(request: Request, exc: DetectorError):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    payload = ErrorResponse(
        error=exc.code,
        message=exc.message,
        request_id=request_id,
    )
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump())


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    logger.exception('Unhandled exception request_id=%s', request_id)
    payload = ErrorResponse(
        error='UNEXPECTED_SERVER_ERROR',
        message='Unexpected server error.',
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=payload.model_dump())


@app.get('/health', response_model=HealthResponse)
def health():
    catalog: TemplateCatalog = app.state.catalog
    aggregator: DetectionAggregator = app.state.aggregator
    return HealthResponse(
        ok=True,
        version=settings.version,
        scorer=aggregator.scorer.scorer_id,
        nms_policy=aggregator.nms_policy.value,
        templates_loaded=catalog.size,
        labels=catalog.labels,
        uptime_s=round(time.time() - started_at, 3),
    )


@app.post('/detect', response_model=DetectResponse)
async def detect(
    request: Request,
    image: UploadFile = File(...),
    score_threshold: float | None = Form(default=None),
    iou_threshold: float | None = Form(default=None),
    nms_policy: str | None = Form(default=None),
):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    _, result, byte_count = await _run_detection(image, score_threshold, iou_threshold, nms_policy)
    response = _to_response(result)
    logger.info(
        'detect request_id=%s bytes=%s detections=%s warnings=%s latency_ms=%s',
        request_id,
        byte_count,
        result.count,
        len(result.warnings),
        result.latency_ms,
    )
    return response


@app.post('/render')
async def render(
    request: Request,
    image: UploadFile = File(...),
    score_threshold: float | None = Form(default=None),
    iou_threshold: float | None = Form(default=None),
    nms_policy: str | None = Form(default=None),
):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    img, result, byte_count = await _run_detection(image, score_threshold, iou_threshold, nms_policy)
    annotated = render_detections(img, result.detections, app.state.palette, scale=settings.render_scale)
    buffer = io.BytesIO()
    annotated.save(buffer, format='PNG')
    logger.info('render request_id=%s bytes=%s detections=%s', request_id, byte_count, result.count)
    return Response(
        content=buffer.getvalue(),
        media_type='image/png',
        headers={'x-detection-count': str(result.count)},
    )
