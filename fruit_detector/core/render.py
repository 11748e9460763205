from typing import Sequence

from PIL import Image, ImageColor, ImageDraw, ImageFont

from fruit_detector.core.types import Detection

RGB = tuple[int, int, int]


def _parse_color(value: str | Sequence[int]) -> RGB:
    if isinstance(value, str):
        parsed = ImageColor.getrgb(value)
        return (parsed[0], parsed[1], parsed[2])
    channels = tuple(int(channel) for channel in value)
    if len(channels) != 3 or any(channel < 0 or channel > 255 for channel in channels):
        raise ValueError(f'Color must be three 0-255 channels, got {value!r}')
    return channels  # type: ignore[return-value]


class LabelPalette:
    """Label to RGB color mapping with a required fallback color."""

    def __init__(self, colors: dict[str, str | Sequence[int]], fallback: str | Sequence[int]):
        if fallback is None:
            raise ValueError('LabelPalette requires a fallback color.')
        self._fallback = _parse_color(fallback)
        self._colors = {str(label): _parse_color(color) for label, color in colors.items()}

    @property
    def fallback(self) -> RGB:
        return self._fallback

    def color_for(self, label: str) -> RGB:
        return self._colors.get(label, self._fallback)


def render_detections(
    image: Image.Image,
    detections: Sequence[Detection],
    palette: LabelPalette,
    scale: float = 2.0,
    count_color: RGB = (0, 0, 255),
) -> Image.Image:
    canvas = image.convert('RGB')
    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()

    for detection in detections:
        color = palette.color_for(detection.label)
        box = detection.box
        draw.rectangle([box.x, box.y, box.x2 - 1, box.y2 - 1], outline=color, width=2)
        draw.text((box.x + 2, box.y + 2), detection.label, fill=color, font=font)

    draw.text((0, max(0, canvas.height - 12)), f'Objects: {len(detections)}', fill=count_color, font=font)

    if scale and scale != 1.0:
        size = (max(1, int(canvas.width * scale)), max(1, int(canvas.height * scale)))
        canvas = canvas.resize(size, Image.Resampling.NEAREST)
    return canvas
