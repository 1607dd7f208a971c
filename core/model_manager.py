"""Classifier registry, weight locations, and lazy model loading."""

import logging
import shutil
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, List, Optional, TypeVar

from core.utils import format_file_size, get_models_dir

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClassifierKind(Enum):
    GENERAL = "general"        # pretrained torchvision ImageNet classifier
    CHECKPOINT = "checkpoint"  # user-supplied TorchScript model + label list


@dataclass
class ModelInfo:
    """Metadata about an available image classifier."""
    name: str
    display_name: str
    kind: ClassifierKind
    size_mb: float
    description: str
    architecture: str = ""
    weights: str = ""
    auto_download: bool = True


MODEL_REGISTRY: List[ModelInfo] = [
    ModelInfo(
        name="mobilenet-v2-imagenet",
        display_name="MobileNetV2 (ImageNet)",
        kind=ClassifierKind.GENERAL,
        size_mb=14.0,
        description="General-purpose 1000-class ImageNet classifier. Labels are matched to skin findings by keyword.",
        architecture="mobilenet_v2",
        weights="MobileNet_V2_Weights.IMAGENET1K_V2",
        auto_download=True,
    ),
    ModelInfo(
        name="efficientnet-b0-imagenet",
        display_name="EfficientNet-B0 (ImageNet)",
        kind=ClassifierKind.GENERAL,
        size_mb=21.0,
        description="General-purpose 1000-class ImageNet classifier with higher accuracy than MobileNetV2.",
        architecture="efficientnet_b0",
        weights="EfficientNet_B0_Weights.IMAGENET1K_V1",
        auto_download=True,
    ),
    ModelInfo(
        name="custom-skin",
        display_name="Custom skin model (TorchScript)",
        kind=ClassifierKind.CHECKPOINT,
        size_mb=0.0,
        description="Your own TorchScript classifier. Place model.pt and labels.json in the model directory.",
        auto_download=False,
    ),
]


class LazyModel(Generic[T]):
    """Loads an expensive resource once, on first use, under a lock.

    Concurrent callers racing the first load block on the lock and receive
    the instance produced by the one load in flight. A failed load is not
    cached; the next caller retries.
    """

    def __init__(self, loader: Callable[[], T], name: str = ""):
        self._loader = loader
        self._name = name
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._loaded = False

    def get(self) -> T:
        if self._loaded:
            return self._value
        with self._lock:
            if not self._loaded:
                logger.info("Loading model %s", self._name)
                self._value = self._loader()
                self._loaded = True
                logger.info("Model %s loaded", self._name)
        return self._value

    def is_loaded(self) -> bool:
        return self._loaded

    def reset(self):
        """Drop the loaded instance so the next get() loads again."""
        with self._lock:
            self._value = None
            self._loaded = False


class ModelManager:
    """Manages classifier metadata and locally stored weights."""

    def __init__(self, models_dir: Optional[Path] = None):
        self._models_dir = Path(models_dir) if models_dir else get_models_dir()

    def get_registry(self) -> List[ModelInfo]:
        """Get all available models."""
        return MODEL_REGISTRY

    def get_model_info(self, model_name: str) -> Optional[ModelInfo]:
        """Get info for a specific model."""
        for model in MODEL_REGISTRY:
            if model.name == model_name:
                return model
        return None

    def get_models_for_kind(self, kind: ClassifierKind) -> List[ModelInfo]:
        """Get models of one classifier kind."""
        return [m for m in MODEL_REGISTRY if m.kind == kind]

    def is_model_available(self, model_name: str) -> bool:
        """Check if a model is ready to use.

        General torchvision models download on first use via the library's
        own cache, so they are always considered available. Checkpoint
        models need both model.pt and labels.json on disk.
        """
        info = self.get_model_info(model_name)
        if info is None:
            return False
        if info.kind == ClassifierKind.GENERAL:
            return info.auto_download
        return self.get_model_path(model_name).exists() and self.get_labels_path(model_name).exists()

    def get_model_path(self, model_name: str) -> Path:
        """Get the local path for a checkpoint model file."""
        return self._models_dir / model_name / "model.pt"

    def get_labels_path(self, model_name: str) -> Path:
        """Get the local path for a checkpoint model's label list."""
        return self._models_dir / model_name / "labels.json"

    def get_models_dir(self) -> Path:
        """Get the root models directory."""
        return self._models_dir

    def get_total_size(self) -> int:
        """Get total size of all locally stored models in bytes."""
        total = 0
        if self._models_dir.exists():
            for f in self._models_dir.rglob("*"):
                if f.is_file():
                    total += f.stat().st_size
        return total

    def get_total_size_formatted(self) -> str:
        """Get total model storage as human-readable string."""
        return format_file_size(self.get_total_size())

    def delete_model(self, model_name: str) -> bool:
        """Delete a locally stored model."""
        model_dir = self._models_dir / model_name
        if model_dir.exists():
            shutil.rmtree(model_dir)
            return True
        return False

    def ensure_model_dir(self, model_name: str) -> Path:
        """Create and return the directory for a model."""
        model_dir = self._models_dir / model_name
        model_dir.mkdir(parents=True, exist_ok=True)
        return model_dir
