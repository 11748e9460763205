"""Command-line entry point: detect fruit templates in one image."""
import argparse
import logging
import sys
from pathlib import Path

from fruit_detector.config import get_settings
from fruit_detector.core.aggregator import DetectionAggregator
from fruit_detector.core.errors import DetectorError
from fruit_detector.core.nms import NmsPolicy
from fruit_detector.core.postprocess import build_report
from fruit_detector.core.render import LabelPalette, render_detections
from fruit_detector.core.scorer import create_scorer
from fruit_detector.core.templates import TemplateCatalog
from fruit_detector.core.types import TemplateAsset
from fruit_detector.logging_setup import setup_logging
from fruit_detector.utils.image_io import load_image_from_path

logger = logging.getLogger('fruit_detector.cli')


def _parse_template(value: str) -> TemplateAsset:
    path, sep, label = value.rpartition(':')
    if not sep or not path or not label:
        raise argparse.ArgumentTypeError(f'Expected PATH:LABEL, got {value!r}')
    return TemplateAsset(path=path, label=label)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description='Find fruit templates in a grayscale image')
    parser.add_argument('source', type=Path, help='Source image to search')
    parser.add_argument(
        '--template',
        dest='templates',
        action='append',
        type=_parse_template,
        default=[],
        help='Template as PATH:LABEL, repeatable. Overrides the manifest.',
    )
    parser.add_argument('--manifest', default=settings.templates_manifest_path, help='JSON template manifest')
    parser.add_argument('--score-threshold', type=float, default=settings.score_threshold)
    parser.add_argument('--iou-threshold', type=float, default=settings.iou_threshold)
    parser.add_argument(
        '--nms-policy',
        choices=[policy.value for policy in NmsPolicy],
        default=settings.nms_policy.value,
    )
    parser.add_argument('--scorer', choices=['opencv', 'numpy'], default=settings.scorer)
    parser.add_argument('--output', type=Path, default=None, help='Write the annotated image here')
    parser.add_argument('--log-level', default=settings.log_level)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    settings = get_settings().model_copy(update={'scorer': args.scorer})

    templates = args.templates or TemplateCatalog(args.manifest).assets
    if not templates:
        logger.error('No templates given, pass --template PATH:LABEL or a manifest.')
        return 2

    try:
        image = load_image_from_path(args.source)
    except DetectorError as exc:
        logger.error('%s: %s', exc.code, exc.message)
        return 1

    aggregator = DetectionAggregator(
        scorer=create_scorer(settings),
        score_threshold=args.score_threshold,
        iou_threshold=args.iou_threshold,
        nms_policy=args.nms_policy,
    )
    result = aggregator.detect(image, templates)

    for line in build_report(result.detections):
        print(line)
    for warning in result.warnings:
        print(f'Skipped template {warning.template}: {warning.message}', file=sys.stderr)

    if args.output is not None:
        palette = LabelPalette(settings.label_colors, settings.fallback_color)
        render_detections(image, result.detections, palette, scale=settings.render_scale).save(args.output)
        logger.info('Annotated image written path=%s', args.output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
