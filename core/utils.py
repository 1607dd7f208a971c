"""Shared utilities, dataclasses, errors, validation, and platform-specific paths."""

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np


# --- Type aliases ---

ProgressCallback = Callable[[int, int, str], None]  # (step, total, message)
CancelCheck = Callable[[], bool]  # Returns True if cancelled
BoundingBox = Tuple[int, int, int, int]  # (min_x, min_y, max_x, max_y)


# --- Errors ---

class AnalysisError(Exception):
    """Base class for failures that abort a skin analysis."""


class ClassifierUnavailable(AnalysisError):
    """The image classifier could not be loaded, failed, or timed out."""


class MalformedImage(AnalysisError, ValueError):
    """Pixel data does not match the declared image dimensions."""


# --- Enums ---

class Condition(Enum):
    BACTERIAL_INFECTION = "Bacterial Infection"
    FUNGAL_INFECTION = "Fungal Infection"
    VIRAL_INFECTION = "Viral Infection"
    ECZEMA = "Eczema"
    PSORIASIS = "Psoriasis"
    NORMAL_SKIN = "Normal Skin"

    @classmethod
    def from_key(cls, key: str) -> "Condition":
        """Resolve a condition from its display value or its short key.

        Accepts "Eczema", "NormalSkin", "normal_skin" and "NORMAL_SKIN" alike.
        """
        compact = key.replace(" ", "").replace("_", "").lower()
        for condition in cls:
            if condition.value.replace(" ", "").lower() == compact:
                return condition
        raise ValueError(f"Unknown condition: {key}")


class ShapeLabel(Enum):
    ROUND = "Round"
    OVAL = "Oval"
    IRREGULAR = "Irregular"


class RiskLevel(Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


# --- Image and mask ---

@dataclass(frozen=True, eq=False)
class ImageBuffer:
    """Decoded RGBA raster.

    ``samples`` may be a flat byte sequence of length width*height*4 or an
    array of shape (height, width, 4); it is stored as a read-only uint8
    array of shape (height, width, 4).
    """
    width: int
    height: int
    samples: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise MalformedImage(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )

        expected = self.width * self.height * 4
        raw = self.samples
        if isinstance(raw, (bytes, bytearray, memoryview)):
            arr = np.frombuffer(bytes(raw), dtype=np.uint8)
        else:
            arr = np.asarray(raw)
            if arr.dtype != np.uint8:
                if arr.dtype.kind not in "iuf":
                    raise MalformedImage(f"Unsupported sample dtype {arr.dtype}")
                if arr.dtype.kind == "f" and not np.array_equal(arr, np.floor(arr)):
                    raise MalformedImage("Sample values must be whole numbers")
                if arr.size and (arr.min() < 0 or arr.max() > 255):
                    raise MalformedImage("Sample values must lie in [0, 255]")
                arr = arr.astype(np.uint8)

        if arr.size != expected:
            raise MalformedImage(
                f"Expected {expected} samples for {self.width}x{self.height} RGBA, "
                f"got {arr.size}"
            )
        if arr.ndim not in (1, 3) or (arr.ndim == 3 and arr.shape != (self.height, self.width, 4)):
            raise MalformedImage(
                f"Sample array shape {arr.shape} does not match "
                f"({self.height}, {self.width}, 4)"
            )

        arr = np.array(arr, dtype=np.uint8).reshape(self.height, self.width, 4)
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)

    @property
    def rgb(self) -> np.ndarray:
        """View of the RGB channels, shape (height, width, 3)."""
        return self.samples[:, :, :3]


@dataclass(frozen=True, eq=False)
class LesionMask:
    """Per-pixel lesion membership with its tight bounding box."""
    width: int
    height: int
    membership: np.ndarray  # bool, shape (height, width)
    bbox: Optional[BoundingBox] = None

    @property
    def area(self) -> int:
        return int(np.count_nonzero(self.membership))

    @property
    def is_empty(self) -> bool:
        return self.bbox is None


# --- Descriptors ---

@dataclass(frozen=True)
class MorphologyDescriptor:
    """Shape, size and border measurements of a lesion mask."""
    area_px: int = 0
    perimeter_px: int = 0
    diameter_px: float = 0.0
    width_px: int = 0
    height_px: int = 0
    aspect_ratio: float = 1.0
    circularity: float = 0.0
    asymmetry_score: float = 0.0
    border_irregularity: float = 0.0
    shape_label: ShapeLabel = ShapeLabel.OVAL
    width_mm: float = 0.0
    height_mm: float = 0.0
    diameter_mm: float = 0.0

    @property
    def border_smoothness(self) -> float:
        return 1.0 - self.border_irregularity

    def to_dict(self) -> dict:
        return {
            "area": self.area_px,
            "perimeter": self.perimeter_px,
            "diameter": round(self.diameter_px, 2),
            "width": self.width_px,
            "height": self.height_px,
            "widthMM": round(self.width_mm, 1),
            "heightMM": round(self.height_mm, 1),
            "diameterMM": round(self.diameter_mm, 1),
            "aspectRatio": round(self.aspect_ratio, 2),
            "circularity": round(self.circularity, 2),
            "shape": self.shape_label.value,
            "asymmetryScore": round(self.asymmetry_score, 2),
            "borderIrregularity": round(self.border_irregularity, 2),
            "borderSmoothness": round(self.border_smoothness, 2),
        }


@dataclass(frozen=True)
class DominantColor:
    rgb: Tuple[int, int, int]
    percentage: int

    @property
    def hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)


@dataclass(frozen=True)
class ColorDescriptor:
    """Color spread and the most frequent quantized colors of a lesion."""
    color_variation: float = 0.0
    dominant_colors: Tuple[DominantColor, ...] = ()

    def to_dict(self) -> dict:
        return {
            "colorVariation": round(self.color_variation, 2),
            "dominantColors": [
                {"rgb": list(c.rgb), "hex": c.hex, "percentage": c.percentage}
                for c in self.dominant_colors
            ],
        }


# --- Classifier output ---

@dataclass(frozen=True)
class ClassifierPrediction:
    label: str
    confidence: float


@dataclass(frozen=True)
class ClassifierResult:
    """Top predictions of the image classifier, confidence-descending."""
    predictions: Tuple[ClassifierPrediction, ...] = ()
    model_name: str = ""

    @property
    def top(self) -> Optional[ClassifierPrediction]:
        return self.predictions[0] if self.predictions else None

    def to_list(self) -> List[dict]:
        return [{"label": p.label, "confidence": p.confidence} for p in self.predictions]


# --- Assessments ---

@dataclass(frozen=True)
class RiskPatterns:
    asymmetry: bool = False
    border: bool = False
    color: bool = False
    diameter: bool = False
    evolving: bool = False


@dataclass(frozen=True)
class RiskAssessment:
    """Bounded cancer-risk heuristic with ABCDE-style pattern flags."""
    cancer_percentage: int
    confidence: float
    patterns: RiskPatterns = field(default_factory=RiskPatterns)

    def to_dict(self) -> dict:
        return {
            "cancerPercentage": self.cancer_percentage,
            "confidence": self.confidence,
            "patterns": {
                "asymmetry": self.patterns.asymmetry,
                "border": self.patterns.border,
                "color": self.patterns.color,
                "diameter": self.patterns.diameter,
                "evolving": self.patterns.evolving,
            },
        }


@dataclass(frozen=True)
class ConditionAssessment:
    """Primary skin condition with a distribution summing to 100."""
    primary_condition: Condition
    confidence: int
    all_conditions: Dict[Condition, int]
    has_condition: bool

    def to_dict(self) -> dict:
        return {
            "primaryCondition": self.primary_condition.value,
            "confidence": self.confidence,
            "allConditions": {c.value: pct for c, pct in self.all_conditions.items()},
            "hasCondition": self.has_condition,
        }


DISCLAIMER = (
    "This is a screening aid, NOT a diagnostic tool. "
    "Always consult a qualified healthcare professional."
)


@dataclass(frozen=True)
class SkinAnalysisResult:
    """Both assessments of one image plus the descriptors they came from."""
    risk: RiskAssessment
    condition: ConditionAssessment
    morphology: MorphologyDescriptor = field(default_factory=MorphologyDescriptor)
    color: ColorDescriptor = field(default_factory=ColorDescriptor)
    predictions: ClassifierResult = field(default_factory=ClassifierResult)
    processing_time_ms: int = 0
    model_name: str = ""
    input_path: str = ""
    analyzed_at: str = field(default_factory=lambda: datetime.now().isoformat())
    disclaimer: str = DISCLAIMER

    def to_dict(self) -> dict:
        return {
            "risk": self.risk.to_dict(),
            "condition": self.condition.to_dict(),
            "lesionDetails": {**self.morphology.to_dict(), **self.color.to_dict()},
            "topPredictions": self.predictions.to_list(),
            "modelName": self.model_name,
            "processingTimeMs": self.processing_time_ms,
            "analyzedAt": self.analyzed_at,
        }


# --- Configuration ---

@dataclass
class AnalysisConfig:
    """Tunable parameters of a skin analysis."""
    threshold: int = 128
    pixels_per_mm: float = 10.0
    model_name: str = "mobilenet-v2-imagenet"
    top_k: int = 3
    classifier_timeout_s: float = 30.0
    parallel_scoring: bool = True
    lexicon_path: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of image validation."""
    valid: bool
    error_message: str = ""
    image_width: int = 0
    image_height: int = 0
    file_size_bytes: int = 0


# --- Rounding and risk levels ---

def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values, like Math.round."""
    return int(np.floor(value + 0.5))


def risk_level_from_percentage(cancer_percentage: int) -> RiskLevel:
    """Map a cancer-risk percentage to a display risk level."""
    if cancer_percentage >= 20:
        return RiskLevel.HIGH
    elif cancer_percentage >= 15:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


# --- Platform-specific paths ---

def get_data_dir() -> Path:
    """Get the platform-specific application data directory."""
    override = os.environ.get("LESIONSCAN_HOME")
    if override:
        base = Path(override)
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / "LesionScan"
    elif sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home())) / "LesionScan"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "lesionscan"
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_models_dir() -> Path:
    """Get the directory for downloaded classifier weights."""
    models_dir = get_data_dir() / "models"
    models_dir.mkdir(parents=True, exist_ok=True)
    return models_dir


def get_cache_dir() -> Path:
    """Get the platform-specific cache directory."""
    override = os.environ.get("LESIONSCAN_HOME")
    if override:
        base = Path(override) / "cache"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Caches" / "LesionScan"
    elif sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home())) / "LesionScan" / "Cache"
    else:
        base = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")) / "lesionscan"
    base.mkdir(parents=True, exist_ok=True)
    return base


# --- Validation ---

SUPPORTED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


def validate_skin_image(file_path: str) -> ValidationResult:
    """Validate that a file is a readable photograph in a supported format."""
    from i18n import t

    if not file_path:
        return ValidationResult(valid=False, error_message=t("validation.no_file"))

    path = Path(file_path)

    if not path.exists():
        return ValidationResult(valid=False, error_message=t("validation.file_not_found"))

    if not path.is_file():
        return ValidationResult(valid=False, error_message=t("validation.not_a_file"))

    file_size = path.stat().st_size
    if file_size == 0:
        return ValidationResult(valid=False, error_message=t("validation.empty_file"))

    ext = path.suffix.lower()
    if ext not in SUPPORTED_IMAGE_EXTENSIONS:
        return ValidationResult(
            valid=False,
            error_message=t("validation.unsupported_format", ext=ext),
        )

    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(str(path)) as img:
            width, height = img.size
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError, ValueError):
        return ValidationResult(
            valid=False,
            error_message=t("validation.cannot_read_image"),
        )

    return ValidationResult(
        valid=True,
        image_width=width,
        image_height=height,
        file_size_bytes=file_size,
    )


# --- Formatting ---

def format_file_size(size_bytes: int) -> str:
    """Format byte count as human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
