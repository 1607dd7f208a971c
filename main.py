"""LesionScan: skin lesion triage from a single photograph.

Command-line entry point. Analyzes one image and prints the risk and
skin-condition assessments.
"""

import argparse
import json
import logging
import sys

import i18n
from core.image_preprocessor import ImagePreprocessor
from core.recommendations import build_recommendations
from core.report_generator import ReportGenerator
from core.utils import (
    AnalysisConfig,
    ClassifierUnavailable,
    MalformedImage,
    risk_level_from_percentage,
    validate_skin_image,
)

EXIT_OK = 0
EXIT_BAD_CONFIG = 1
EXIT_MALFORMED_IMAGE = 2
EXIT_CLASSIFIER_UNAVAILABLE = 3

logger = logging.getLogger("lesionscan")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze a skin photograph for lesion risk.")
    parser.add_argument("image", help="Path to a JPEG, PNG, BMP, TIFF or WebP photograph.")
    parser.add_argument("--threshold", type=int, default=128,
                        help="Luminance below which pixels count as lesion (0-255).")
    parser.add_argument("--pixels-per-mm", type=float, default=10.0,
                        help="Assumed image scale used for millimetre measurements.")
    parser.add_argument("--model", default="mobilenet-v2-imagenet",
                        help="Registered classifier name.")
    parser.add_argument("--timeout", type=float, default=30.0,
                        help="Seconds to wait for the classifier.")
    parser.add_argument("--lexicon", help="Path to a custom keyword lexicon JSON file.")
    parser.add_argument("--lang", help="Message language (en, es).")
    parser.add_argument("--json", dest="json_out", help="Write a JSON report to this path.")
    parser.add_argument("--txt", dest="txt_out", help="Write a plain text report to this path.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv=None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    i18n.init(args.lang)
    t = i18n.t

    validation = validate_skin_image(args.image)
    if not validation.valid:
        print(t("error.malformed_image", reason=validation.error_message), file=sys.stderr)
        return EXIT_MALFORMED_IMAGE

    config = AnalysisConfig(
        threshold=args.threshold,
        pixels_per_mm=args.pixels_per_mm,
        model_name=args.model,
        classifier_timeout_s=args.timeout,
        lexicon_path=args.lexicon,
    )

    # Import after argument parsing (avoids loading torch for --help)
    from core.skin_analyzer import SkinAnalyzer

    try:
        analyzer = SkinAnalyzer(config)
        image = ImagePreprocessor.load_image(args.image)
        result = analyzer.analyze(image, input_path=args.image)
    except MalformedImage as e:
        print(t("error.malformed_image", reason=str(e)), file=sys.stderr)
        return EXIT_MALFORMED_IMAGE
    except ClassifierUnavailable as e:
        print(t("error.analysis_failed", reason=str(e)), file=sys.stderr)
        return EXIT_CLASSIFIER_UNAVAILABLE
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_BAD_CONFIG

    generator = ReportGenerator()
    if args.json_out and not generator.generate_json(result, args.json_out):
        logger.warning("JSON report was not written")
    if args.txt_out and not generator.generate_txt(result, args.txt_out):
        logger.warning("Text report was not written")

    level = risk_level_from_percentage(result.risk.cancer_percentage)
    summary = {
        **result.to_dict(),
        "riskLevel": level.value,
        "recommendations": [r.text for r in build_recommendations(result)],
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
