"""Skin photograph loading, conversion, and classifier preprocessing."""

import io
from typing import Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.utils import ImageBuffer, MalformedImage

# ImageNet statistics used by torchvision's pretrained classifiers
IMAGENET_MEAN = [0.485, 0.456, 0.406]
IMAGENET_STD = [0.229, 0.224, 0.225]

# Errors Pillow raises for files it refuses to decode
DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError)


class ImagePreprocessor:
    """Turns files, bytes and PIL images into ImageBuffers and model input."""

    @staticmethod
    def from_pil(img: Image.Image) -> ImageBuffer:
        """Convert a PIL image of any mode into an RGBA ImageBuffer."""
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return ImageBuffer(width=width, height=height, samples=np.array(rgba))

    @staticmethod
    def from_array(array: np.ndarray) -> ImageBuffer:
        """Build an ImageBuffer from a grayscale, RGB or RGBA uint8 array."""
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise MalformedImage(f"Unsupported array shape for an image: {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=arr.dtype)
            arr = np.concatenate([arr, alpha], axis=-1)
        height, width = arr.shape[:2]
        return ImageBuffer(width=width, height=height, samples=arr)

    @staticmethod
    def load_image(image_path: str) -> ImageBuffer:
        """Load a JPEG, PNG, BMP, TIFF or WebP photograph."""
        try:
            with Image.open(image_path) as img:
                return ImagePreprocessor.from_pil(img)
        except MalformedImage:
            raise
        except DECODE_ERRORS as e:
            raise MalformedImage(f"Cannot read image {image_path}: {e}") from e

    @staticmethod
    def load_bytes(data: bytes) -> ImageBuffer:
        """Decode an encoded image (JPEG, PNG, ...) held in memory."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                return ImagePreprocessor.from_pil(img)
        except MalformedImage:
            raise
        except DECODE_ERRORS as e:
            raise MalformedImage(f"Cannot decode image bytes: {e}") from e

    @staticmethod
    def to_pil(image: ImageBuffer) -> Image.Image:
        """RGB PIL view of an ImageBuffer (alpha dropped)."""
        return Image.fromarray(np.ascontiguousarray(image.rgb))

    @staticmethod
    def preprocess_for_classifier(
        image: ImageBuffer,
        size: Tuple[int, int] = (224, 224),
    ) -> "torch.Tensor":
        """Preprocess an image for an ImageNet-style torchvision classifier.

        Returns tensor of shape (1, 3, H, W) with ImageNet normalization.
        """
        from torchvision import transforms

        transform = transforms.Compose([
            transforms.Resize(size),
            transforms.ToTensor(),
            transforms.Normalize(mean=IMAGENET_MEAN, std=IMAGENET_STD),
        ])

        with ImagePreprocessor.to_pil(image) as img:
            tensor = transform(img)
        return tensor.unsqueeze(0)  # Add batch dimension

    @staticmethod
    def create_thumbnail(
        image: Union[ImageBuffer, str],
        size: Tuple[int, int] = (128, 128),
    ) -> bytes:
        """Create a JPEG thumbnail and return as bytes."""
        if isinstance(image, str):
            image = ImagePreprocessor.load_image(image)

        with ImagePreprocessor.to_pil(image) as img:
            img.thumbnail(size, Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=80)
        return buffer.getvalue()
