from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class Box:
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError(f'Box origin must be non-negative, got ({self.x}, {self.y})')
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f'Box size must be positive, got {self.width}x{self.height}')

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_xyxy(self) -> list[int]:
        return [self.x, self.y, self.x2, self.y2]


@dataclass(frozen=True)
class Candidate:
    box: Box
    score: float
    label: str


@dataclass(frozen=True)
class Detection:
    box: Box
    label: str
    score: float | None = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> 'Detection':
        return cls(box=candidate.box, label=candidate.label, score=candidate.score)


@dataclass(frozen=True, eq=False)
class TemplateDescriptor:
    raster: np.ndarray
    label: str
    name: str | None = None

    @property
    def width(self) -> int:
        return int(self.raster.shape[1])

    @property
    def height(self) -> int:
        return int(self.raster.shape[0])

    @property
    def display_name(self) -> str:
        return self.name or self.label


@dataclass(frozen=True)
class TemplateAsset:
    path: str
    label: str


@dataclass(frozen=True)
class TemplateWarning:
    template: str
    label: str
    code: str
    message: str


@dataclass(frozen=True)
class DetectionResult:
    detections: tuple[Detection, ...]
    scorer_id: str
    latency_ms: int
    image_size: tuple[int, int]
    warnings: tuple[TemplateWarning, ...] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.detections)
