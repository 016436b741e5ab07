"""
src/vision/image_analyzer.py
=============================
Local Image Analyzer — DocVerify

Responsibility:
    - Detect faces on a document image (Haar cascade)
    - Detect tampering via error-level analysis (ELA) and the EXIF
      editing-software tag
    - Report basic capture quality: blur, lighting, document-likeness
    - Report pixel dimensions

Outputs (one dict per capability):
    detect_faces      → {"face_count", "any_face", "highest_confidence"}
    detect_tampering  → {"tampered", "suspicious_content", "width", "height",
                         "ela_score"}
    analyze_quality   → {"blurry", "good_lighting", "document_like"}

This module does NOT:
    - Compute risk scores
    - Read text from the image (handled by src.ocr)
    - Retry failed analysis
    - Store data
"""

import io
import logging
from typing import Any

import cv2
import numpy as np
from PIL import ExifTags, Image, ImageChops, UnidentifiedImageError

logger = logging.getLogger("docverify.vision.image_analyzer")


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

# ELA: recompress at this JPEG quality, amplify the difference, average it
_ELA_JPEG_QUALITY: int = 90
_ELA_AMPLIFY: int = 12
_ELA_TAMPER_THRESHOLD: float = 20.0

# Laplacian variance below this → blurry
_BLUR_VARIANCE_THRESHOLD: float = 100.0

# Mean grayscale brightness window for adequate lighting
_BRIGHTNESS_MIN: float = 55.0
_BRIGHTNESS_MAX: float = 200.0

# Document shapes: ID-1 card (85.60 × 53.98 mm) and ISO 216 page
_CARD_ASPECT: float = 1.586
_PAGE_ASPECT: float = 1.414
_ASPECT_TOLERANCE: float = 0.08

# A quadrilateral contour covering at least this share of the frame
_MIN_DOCUMENT_AREA_RATIO: float = 0.25

_EDITING_SOFTWARE: tuple[str, ...] = (
    "photoshop", "gimp", "paint.net", "pixlr", "affinity", "lightroom", "snapseed",
)

_EXIF_SOFTWARE_TAGS: frozenset[str] = frozenset({"Software", "ProcessingSoftware"})


class ImageAnalysisError(Exception):
    """Raised when the image cannot be decoded or analyzed."""
    pass


def _decode(image_bytes: bytes) -> Image.Image:
    if not image_bytes:
        raise ImageAnalysisError("Image is empty")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageAnalysisError(f"Cannot decode image: {exc}") from exc
    return image


def _to_gray(image: Image.Image) -> np.ndarray:
    rgb = np.asarray(image.convert("RGB"))
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


class LocalImageAnalyzer:
    """ImageAnalyzer backed by OpenCV, Pillow and NumPy; runs fully offline."""

    def __init__(self, cascade_path: str | None = None) -> None:
        path = cascade_path or (cv2.data.haarcascades + "haarcascade_frontalface_default.xml")
        try:
            self._face_cascade = cv2.CascadeClassifier(path)
        except cv2.error as exc:
            raise ImageAnalysisError(f"Cannot load face cascade from {path}: {exc}") from exc
        if self._face_cascade.empty():
            raise ImageAnalysisError(f"Cannot load face cascade from {path}")

    # ------------------------------------------------------------------
    # Faces
    # ------------------------------------------------------------------

    def detect_faces(self, image_bytes: bytes) -> dict[str, Any]:
        """
        Count frontal faces.

        The Haar detector yields no per-face confidence, so
        highest_confidence is always None.
        """
        gray = _to_gray(_decode(image_bytes))
        faces = self._face_cascade.detectMultiScale(
            gray, scaleFactor=1.1, minNeighbors=5, minSize=(30, 30),
        )
        face_count = len(faces)

        logger.info("Face detection: %d face(s).", face_count)
        return {
            "face_count": face_count,
            "any_face": face_count > 0,
            "highest_confidence": None,
        }

    # ------------------------------------------------------------------
    # Tampering
    # ------------------------------------------------------------------

    def detect_tampering(self, image_bytes: bytes) -> dict[str, Any]:
        image = _decode(image_bytes)
        width, height = image.size

        ela = _ela_score(image)
        software = _editing_software(image)

        result = {
            "tampered": ela > _ELA_TAMPER_THRESHOLD,
            "suspicious_content": software is not None,
            "width": int(width),
            "height": int(height),
            "ela_score": round(ela, 2),
        }
        if software:
            logger.info("EXIF software tag names an editor: %s", software)
        logger.info(
            "Tamper analysis: ela=%.2f, tampered=%s, %dx%d.",
            ela, result["tampered"], width, height,
        )
        return result

    # ------------------------------------------------------------------
    # Quality
    # ------------------------------------------------------------------

    def analyze_quality(self, image_bytes: bytes) -> dict[str, bool]:
        image = _decode(image_bytes)
        gray = _to_gray(image)

        blur_variance = float(cv2.Laplacian(gray, cv2.CV_64F).var())
        brightness = float(gray.mean())

        result = {
            "blurry": blur_variance < _BLUR_VARIANCE_THRESHOLD,
            "good_lighting": _BRIGHTNESS_MIN <= brightness <= _BRIGHTNESS_MAX,
            "document_like": _has_document_aspect(*image.size) or _has_document_contour(gray),
        }
        logger.info(
            "Quality analysis: blur_var=%.1f, brightness=%.1f → %s",
            blur_variance, brightness, result,
        )
        return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ela_score(image: Image.Image) -> float:
    """Mean amplified difference between the image and a JPEG re-save of it."""
    original = image.convert("RGB")
    buf = io.BytesIO()
    original.save(buf, "JPEG", quality=_ELA_JPEG_QUALITY)
    buf.seek(0)
    recompressed = Image.open(buf).convert("RGB")

    diff = ImageChops.difference(original, recompressed)
    amplified = Image.eval(diff, lambda x: min(255, x * _ELA_AMPLIFY))
    return float(np.asarray(amplified).mean())


def _editing_software(image: Image.Image) -> str | None:
    """Return the EXIF software value when it names a known editor."""
    exif = image.getexif()
    for tag_id, value in exif.items():
        if ExifTags.TAGS.get(tag_id) not in _EXIF_SOFTWARE_TAGS:
            continue
        text = str(value)
        if any(name in text.lower() for name in _EDITING_SOFTWARE):
            return text
    return None


def _has_document_aspect(width: int, height: int) -> bool:
    if width <= 0 or height <= 0:
        return False
    ratio = max(width, height) / min(width, height)
    return any(
        abs(ratio - target) <= _ASPECT_TOLERANCE
        for target in (_CARD_ASPECT, _PAGE_ASPECT)
    )


def _has_document_contour(gray: np.ndarray) -> bool:
    """True when the largest external contour is a large quadrilateral."""
    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    edges = cv2.Canny(blurred, 50, 150)
    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        return False

    largest = max(contours, key=cv2.contourArea)
    frame_area = float(gray.shape[0] * gray.shape[1])
    if frame_area == 0 or cv2.contourArea(largest) / frame_area < _MIN_DOCUMENT_AREA_RATIO:
        return False

    approx = cv2.approxPolyDP(largest, 0.02 * cv2.arcLength(largest, True), True)
    return len(approx) == 4
