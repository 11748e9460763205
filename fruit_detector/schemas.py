from pydantic import BaseModel


class BoxOut(BaseModel):
    x: int
    y: int
    width: int
    height: int


class DetectionOut(BaseModel):
    label: str
    score: float | None = None
    box: BoxOut


class TemplateWarningOut(BaseModel):
    template: str
    label: str
    code: str
    message: str


class DetectResponse(BaseModel):
    ok: bool = True
    scorer: str
    latency_ms: int
    image_size: tuple[int, int]
    count: int
    counts: dict[str, int] = {}
    detections: list[DetectionOut]
    warnings: list[TemplateWarningOut] = []


class HealthResponse(BaseModel):
    ok: bool
    version: str
    scorer: str
    nms_policy: str
    templates_loaded: int
    labels: list[str] = []
    uptime_s: float


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    request_id: str | None = None
