"""Shared test fixtures for LesionScan."""

import tempfile
import threading
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from core.classifier import CallableClassifier
from core.image_preprocessor import ImagePreprocessor
from core.utils import (
    ClassifierPrediction,
    ClassifierResult,
    ColorDescriptor,
    Condition,
    ConditionAssessment,
    DominantColor,
    MorphologyDescriptor,
    RiskAssessment,
    RiskPatterns,
    ShapeLabel,
    SkinAnalysisResult,
)

SKIN = (235, 200, 180)
LESION = (40, 30, 20)


def disc_mask(size: int = 101, radius: int = 30) -> np.ndarray:
    """Boolean disc centred in a size x size frame."""
    yy, xx = np.mgrid[0:size, 0:size]
    c = size // 2
    return (xx - c) ** 2 + (yy - c) ** 2 <= radius * radius


def paint(mask: np.ndarray, lesion=LESION, background=SKIN) -> np.ndarray:
    """RGB array with ``lesion`` where mask is True and ``background`` elsewhere."""
    rgb = np.empty(mask.shape + (3,), dtype=np.uint8)
    rgb[...] = background
    rgb[mask] = lesion
    return rgb


class StubClassifier(CallableClassifier):
    """Deterministic classifier that counts its calls."""

    def __init__(self, predictions):
        self.calls = 0
        self._lock = threading.Lock()
        self._predictions = list(predictions)
        super().__init__(self._predict, name="stub")

    def _predict(self, image):
        with self._lock:
            self.calls += 1
        return self._predictions


@pytest.fixture(autouse=True)
def _isolated_home(monkeypatch, tmp_path):
    """Keep data, model and cache directories inside the test's tmp dir."""
    monkeypatch.setenv("LESIONSCAN_HOME", str(tmp_path / "home"))


@pytest.fixture(autouse=True)
def _init_i18n():
    """Initialize i18n in English for all tests."""
    import i18n
    i18n.init("en")


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def white_image():
    """All-white 64x64 image: nothing to segment."""
    return ImagePreprocessor.from_array(np.full((64, 64, 3), 255, dtype=np.uint8))


@pytest.fixture
def disc_image():
    """Dark round lesion of radius 30 on light skin, 101x101."""
    return ImagePreprocessor.from_array(paint(disc_mask()))


@pytest.fixture
def disc_image_path(tmp_dir):
    path = tmp_dir / "disc.png"
    Image.fromarray(paint(disc_mask())).save(path)
    return str(path)


@pytest.fixture
def melanoma_classifier():
    return StubClassifier([("melanoma", 0.9), ("mole", 0.05), ("wall clock", 0.02)])


@pytest.fixture
def rash_classifier():
    return StubClassifier([("rash", 0.8)])


@pytest.fixture
def sample_skin_result():
    """A hand-built SkinAnalysisResult for export and recommendation tests."""
    return SkinAnalysisResult(
        risk=RiskAssessment(
            cancer_percentage=34,
            confidence=0.8,
            patterns=RiskPatterns(asymmetry=True, diameter=True),
        ),
        condition=ConditionAssessment(
            primary_condition=Condition.ECZEMA,
            confidence=80,
            all_conditions={
                Condition.BACTERIAL_INFECTION: 0,
                Condition.FUNGAL_INFECTION: 0,
                Condition.VIRAL_INFECTION: 0,
                Condition.ECZEMA: 100,
                Condition.PSORIASIS: 0,
                Condition.NORMAL_SKIN: 0,
            },
            has_condition=True,
        ),
        morphology=MorphologyDescriptor(
            area_px=2821,
            perimeter_px=168,
            diameter_px=59.9,
            width_px=60,
            height_px=60,
            aspect_ratio=1.0,
            circularity=1.0,
            asymmetry_score=0.02,
            border_irregularity=0.01,
            shape_label=ShapeLabel.ROUND,
            width_mm=6.0,
            height_mm=6.0,
            diameter_mm=5.99,
        ),
        color=ColorDescriptor(
            color_variation=0.0,
            dominant_colors=(DominantColor(rgb=(32, 0, 0), percentage=100),),
        ),
        predictions=ClassifierResult(
            predictions=(ClassifierPrediction("rash", 0.8),),
            model_name="stub",
        ),
        processing_time_ms=42,
        model_name="stub",
        input_path="/fake/arm.jpg",
    )
