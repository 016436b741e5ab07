"""
src/ocr/tesseract_client.py
============================
Tesseract OCR Client — DocVerify

Responsibility:
    - Run Tesseract over a document image
    - Rebuild text lines from word-level results (block → paragraph → line)
    - Keep only lines whose mean word confidence meets the threshold

Output:
    list[TextLine] in reading order, each with confidence_percent in 0–100.

This module does NOT:
    - Interpret the text (handled by src.ocr.field_extractor)
    - Retry failed OCR calls
    - Store data
"""

import io
import logging

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.schemas.verification import TextLine

logger = logging.getLogger("docverify.ocr.tesseract_client")


DEFAULT_MIN_CONFIDENCE: float = 80.0


class TextExtractionError(Exception):
    """Raised when the OCR engine cannot process the document."""
    pass


class TesseractTextExtractor:
    """TextExtractor backed by a local Tesseract install."""

    def __init__(
        self,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
    ) -> None:
        self.min_confidence = min_confidence
        self.lang = lang
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def extract_lines(self, image_bytes: bytes) -> list[TextLine]:
        """
        OCR the image and return confidence-filtered lines.

        Raises:
            TextExtractionError: If the image cannot be decoded or Tesseract fails.
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise TextExtractionError(f"Cannot decode image for OCR: {exc}") from exc

        try:
            data = pytesseract.image_to_data(
                image, lang=self.lang, output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            raise TextExtractionError(f"Tesseract failed: {exc}") from exc

        all_lines = _group_lines(data)
        kept = [line for line in all_lines if line.confidence_percent >= self.min_confidence]

        logger.info(
            "OCR complete: %d lines, %d at/above %.1f%% confidence.",
            len(all_lines), len(kept), self.min_confidence,
        )
        return kept


def _group_lines(data: dict[str, list]) -> list[TextLine]:
    """
    Group Tesseract word rows into lines, preserving reading order.

    Words with negative confidence are layout rows and carry no text.
    """
    grouped: dict[tuple[int, int, int], tuple[list[str], list[float]]] = {}

    for i, raw_text in enumerate(data.get("text", [])):
        text = (raw_text or "").strip()
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue
        if not text or conf < 0:
            continue

        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        words, confs = grouped.setdefault(key, ([], []))
        words.append(text)
        confs.append(conf)

    return [
        TextLine(
            content=" ".join(words),
            confidence_percent=round(sum(confs) / len(confs), 2),
        )
        for words, confs in grouped.values()
    ]
