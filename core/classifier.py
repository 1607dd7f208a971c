"""Image classifiers and the adapter that enforces their output contract.

The classifier is an external collaborator: a general-purpose model whose
free-form labels are later matched against skin keywords. Whatever goes
wrong while loading or running it surfaces as ClassifierUnavailable. No
placeholder scores are ever substituted.
"""

import json
import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Iterable, List, Optional, Tuple, Union

from core.image_preprocessor import ImagePreprocessor
from core.model_manager import ClassifierKind, LazyModel, ModelInfo, ModelManager
from core.utils import (
    ClassifierPrediction,
    ClassifierResult,
    ClassifierUnavailable,
    ImageBuffer,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3
DEFAULT_TIMEOUT_S = 30.0

RawPrediction = Union[ClassifierPrediction, Tuple[str, float]]


class Classifier(ABC):
    """A model that ranks free-form labels for an image."""

    name: str = ""

    @abstractmethod
    def predict(self, image: ImageBuffer, top_k: int) -> List[RawPrediction]:
        """Return up to ``top_k`` (label, confidence) pairs for ``image``."""

    def load(self):
        """Acquire model weights ahead of the first prediction."""


class TorchvisionClassifier(Classifier):
    """Pretrained ImageNet classifier from torchvision.

    Weights download on first load into torch's hub cache and are shared by
    every prediction made through this instance.
    """

    def __init__(self, info: ModelInfo):
        self.info = info
        self.name = info.name
        self._model = LazyModel(self._build, name=info.name)

    def _build(self):
        from torchvision import models

        weights = models.get_weight(self.info.weights)
        model = models.get_model(self.info.architecture, weights=weights)
        model.eval()
        return model, list(weights.meta["categories"])

    def load(self):
        self._model.get()

    def predict(self, image: ImageBuffer, top_k: int) -> List[RawPrediction]:
        import torch

        model, categories = self._model.get()
        with torch.inference_mode():
            tensor = ImagePreprocessor.preprocess_for_classifier(image)
            probabilities = torch.nn.functional.softmax(model(tensor), dim=1)[0]
            k = min(top_k, probabilities.shape[0])
            values, indices = torch.topk(probabilities, k)
            return [
                (categories[int(i)], float(p))
                for p, i in zip(values.tolist(), indices.tolist())
            ]


class CheckpointClassifier(Classifier):
    """User-supplied TorchScript classifier with its own label list.

    ``labels.json`` holds a JSON array naming each output index. Outputs are
    treated as logits and passed through softmax.
    """

    def __init__(self, info: ModelInfo, manager: ModelManager):
        self.info = info
        self.name = info.name
        self._model_path = manager.get_model_path(info.name)
        self._labels_path = manager.get_labels_path(info.name)
        self._model = LazyModel(self._build, name=info.name)

    def _build(self):
        import torch

        if not self._model_path.exists():
            raise FileNotFoundError(f"Model file not found: {self._model_path}")
        with open(self._labels_path, "r", encoding="utf-8") as f:
            labels = json.load(f)
        if not isinstance(labels, list) or not labels:
            raise ValueError(f"{self._labels_path} must contain a non-empty JSON array")

        model = torch.jit.load(str(self._model_path), map_location="cpu")
        model.eval()
        return model, [str(label) for label in labels]

    def load(self):
        self._model.get()

    def predict(self, image: ImageBuffer, top_k: int) -> List[RawPrediction]:
        import torch

        model, labels = self._model.get()
        with torch.inference_mode():
            tensor = ImagePreprocessor.preprocess_for_classifier(image)
            logits = model(tensor).reshape(-1)
            if logits.shape[0] != len(labels):
                raise ValueError(
                    f"Model produced {logits.shape[0]} outputs for {len(labels)} labels"
                )
            probabilities = torch.softmax(logits, dim=0)
            values, indices = torch.topk(probabilities, min(top_k, len(labels)))
            return [
                (labels[int(i)], float(p))
                for p, i in zip(values.tolist(), indices.tolist())
            ]


class CallableClassifier(Classifier):
    """Adapts a plain function, e.g. a remote inference client or a test stub."""

    def __init__(self, fn: Callable[[ImageBuffer], Iterable[RawPrediction]], name: str = "callable"):
        self._fn = fn
        self.name = name

    def predict(self, image: ImageBuffer, top_k: int) -> List[RawPrediction]:
        return list(self._fn(image))


def create_classifier(model_name: str, manager: Optional[ModelManager] = None) -> Classifier:
    """Build the classifier registered under ``model_name``."""
    manager = manager or ModelManager()
    info = manager.get_model_info(model_name)
    if info is None:
        raise ValueError(f"Unknown model: {model_name}")
    if info.kind == ClassifierKind.CHECKPOINT:
        return CheckpointClassifier(info, manager)
    return TorchvisionClassifier(info)


class ClassifierAdapter:
    """Runs a Classifier under a timeout and normalizes its output.

    The result holds at most ``top_k`` predictions in descending confidence.
    Load errors, runtime errors, timeouts and out-of-contract output all
    raise ClassifierUnavailable.
    """

    def __init__(
        self,
        classifier: Classifier,
        top_k: int = DEFAULT_TOP_K,
        timeout_s: Optional[float] = DEFAULT_TIMEOUT_S,
    ):
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")
        self.classifier = classifier
        self.top_k = top_k
        self.timeout_s = timeout_s

    @property
    def model_name(self) -> str:
        return self.classifier.name

    def warm_up(self):
        """Load the model now rather than on the first classify() call."""
        try:
            self.classifier.load()
        except Exception as e:
            raise ClassifierUnavailable(f"Failed to load {self.model_name}: {e}") from e

    def classify(self, image: ImageBuffer) -> ClassifierResult:
        raw = self._run(image)
        predictions = self._normalize(raw)
        logger.debug(
            "Classifier %s top prediction: %s (%.3f)",
            self.model_name, predictions[0].label, predictions[0].confidence,
        )
        return ClassifierResult(predictions=predictions, model_name=self.model_name)

    def _run(self, image: ImageBuffer) -> List[RawPrediction]:
        if self.timeout_s is None:
            return self._call(image)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
        try:
            future = executor.submit(self._call, image)
            return future.result(timeout=self.timeout_s)
        except FutureTimeoutError as e:
            raise ClassifierUnavailable(
                f"{self.model_name} did not respond within {self.timeout_s:g}s"
            ) from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _call(self, image: ImageBuffer) -> List[RawPrediction]:
        try:
            return list(self.classifier.predict(image, self.top_k))
        except ClassifierUnavailable:
            raise
        except Exception as e:
            raise ClassifierUnavailable(f"{self.model_name} failed: {e}") from e

    def _normalize(self, raw: List[RawPrediction]) -> Tuple[ClassifierPrediction, ...]:
        predictions = []
        for item in raw:
            if isinstance(item, ClassifierPrediction):
                label, confidence = item.label, item.confidence
            else:
                try:
                    label, confidence = item
                except (TypeError, ValueError) as e:
                    raise ClassifierUnavailable(
                        f"{self.model_name} returned a malformed prediction: {item!r}"
                    ) from e
            try:
                confidence = float(confidence)
            except (TypeError, ValueError) as e:
                raise ClassifierUnavailable(
                    f"{self.model_name} returned a non-numeric confidence: {confidence!r}"
                ) from e
            if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
                raise ClassifierUnavailable(
                    f"{self.model_name} returned confidence {confidence} outside [0, 1]"
                )
            predictions.append(ClassifierPrediction(label=str(label), confidence=confidence))

        if not predictions:
            raise ClassifierUnavailable(f"{self.model_name} returned no predictions")

        predictions.sort(key=lambda p: p.confidence, reverse=True)
        return tuple(predictions[: self.top_k])
