# src/ocr/__init__.py
# ====================
# OCR Layer — DocVerify
#
# Responsibility:
#   - Run the OCR engine and keep lines at/above the confidence threshold
#   - Classify ordered OCR lines into typed identity fields
#
# Public API:
#   - TesseractTextExtractor.extract_lines() — image bytes → list[TextLine]
#   - extract_identity_fields()            — list[TextLine] → IdentityFields

from src.ocr.field_extractor import (  # noqa: F401
    IdentityField,
    extract_identity_fields,
)
from src.ocr.tesseract_client import (  # noqa: F401
    TesseractTextExtractor,
    TextExtractionError,
)
