"""Skin lesion analysis: segmentation, descriptors, and classifier fusion.

One call isolates the darkest region of a skin photograph, measures its
shape and color, asks the image classifier for its top labels once, and
scores both a cancer-risk heuristic and a skin-condition distribution from
that single classifier result.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from core.classifier import Classifier, ClassifierAdapter, create_classifier
from core.color_analyzer import ColorAnalyzer
from core.condition_scorer import ConditionScorer
from core.image_preprocessor import ImagePreprocessor
from core.lexicon import Lexicon, load_lexicon
from core.model_manager import ModelManager
from core.risk_scorer import RiskScorer
from core.segmentation import RegionSegmenter
from core.shape_analyzer import ShapeAnalyzer
from core.utils import (
    AnalysisConfig,
    ClassifierResult,
    ClassifierUnavailable,
    ColorDescriptor,
    ImageBuffer,
    MorphologyDescriptor,
    ProgressCallback,
    SkinAnalysisResult,
)

logger = logging.getLogger(__name__)

TOTAL_STEPS = 5


class SkinAnalyzer:
    """Analyzes skin photographs for cancer risk and skin conditions.

    The classifier is chosen at construction: pass any ``Classifier`` or let
    the analyzer build the one registered under ``config.model_name``. Its
    weights load lazily on the first analysis and are reused afterwards, so
    one SkinAnalyzer can be shared between threads.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        classifier: Optional[Classifier] = None,
        manager: Optional[ModelManager] = None,
        lexicon: Optional[Lexicon] = None,
    ):
        self.config = config or AnalysisConfig()
        lexicon = lexicon or load_lexicon(self.config.lexicon_path)
        classifier = classifier or create_classifier(self.config.model_name, manager)

        self.adapter = ClassifierAdapter(
            classifier,
            top_k=self.config.top_k,
            timeout_s=self.config.classifier_timeout_s,
        )
        self.segmenter = RegionSegmenter(self.config.threshold)
        self.shape_analyzer = ShapeAnalyzer(self.config.pixels_per_mm)
        self.color_analyzer = ColorAnalyzer()
        self.risk_scorer = RiskScorer(lexicon)
        self.condition_scorer = ConditionScorer(lexicon, max_predictions=self.config.top_k)

    def analyze(
        self,
        image: ImageBuffer,
        on_progress: Optional[ProgressCallback] = None,
        input_path: str = "",
    ) -> SkinAnalysisResult:
        """Run the full analysis on one image.

        Raises ClassifierUnavailable if the classifier cannot produce a
        result; no assessment is returned in that case. An image without a
        detectable lesion is analyzed with zero-valued descriptors.
        """
        from i18n import t

        start_time = time.time()

        def report(step, msg):
            if on_progress:
                on_progress(step, TOTAL_STEPS, msg)

        report(1, t("progress.segmenting"))
        mask = self.segmenter.segment(image)
        if mask.is_empty:
            logger.info("No lesion pixels below threshold %d; using empty descriptors",
                        self.config.threshold)

        report(2, t("progress.shape"))
        morphology = self.shape_analyzer.analyze_shape(mask)

        report(3, t("progress.color"))
        color = self.color_analyzer.analyze_color(image, mask)

        report(4, t("progress.classifying"))
        try:
            predictions = self.adapter.classify(image)
        except ClassifierUnavailable as e:
            logger.error("Classifier unavailable: %s", e)
            raise

        report(5, t("progress.scoring"))
        risk, condition = self._score(predictions, morphology, color)

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            "Analyzed %dx%d image in %dms: risk=%d%% condition=%s",
            image.width, image.height, elapsed_ms,
            risk.cancer_percentage, condition.primary_condition.value,
        )

        return SkinAnalysisResult(
            risk=risk,
            condition=condition,
            morphology=morphology,
            color=color,
            predictions=predictions,
            processing_time_ms=elapsed_ms,
            model_name=self.adapter.model_name,
            input_path=input_path,
        )

    def analyze_file(
        self,
        image_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SkinAnalysisResult:
        """Load a photograph from disk and analyze it."""
        image = ImagePreprocessor.load_image(image_path)
        return self.analyze(image, on_progress=on_progress, input_path=image_path)

    def _score(
        self,
        predictions: ClassifierResult,
        morphology: MorphologyDescriptor,
        color: ColorDescriptor,
    ):
        """Run both scorers on the same classifier result."""
        if not self.config.parallel_scoring:
            risk = self.risk_scorer.score_risk(predictions.top, morphology, color)
            condition = self.condition_scorer.score_condition(predictions.predictions)
            return risk, condition

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="scoring") as pool:
            risk_future = pool.submit(
                self.risk_scorer.score_risk, predictions.top, morphology, color
            )
            condition_future = pool.submit(
                self.condition_scorer.score_condition, predictions.predictions
            )
            return risk_future.result(), condition_future.result()
