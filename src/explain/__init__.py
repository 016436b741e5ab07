# src/explain/__init__.py
# ========================
# Explanation Generator — DocVerify
#
# Responsibility:
#   - Produce the ordered, human-readable narrative for a risk assessment
#   - Closing lines follow a five-way score band (finer than the storage tier)

from src.explain.explanation_generator import (  # noqa: F401
    closing_lines,
    generate_explanation,
)
