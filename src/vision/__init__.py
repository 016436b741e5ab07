# src/vision/__init__.py
# =======================
# Image Analysis — DocVerify
#
# Responsibility:
#   - Face detection, tamper analysis and capture quality for document images

from src.vision.image_analyzer import ImageAnalysisError, LocalImageAnalyzer  # noqa: F401
