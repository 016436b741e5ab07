# src/risk/__init__.py
# =====================
# Risk Engine — DocVerify
#
# Responsibility:
#   - Bundle face, tamper, quality and extraction signals (immutable)
#   - Compute a bounded risk score (0–100) from fixed rule weights
#   - Fold in an optional, fail-open external model adjustment (0–25)
#   - Classify the storage tier (LOW | MEDIUM | HIGH RISK)
#
# Public API:
#   - build_signal_bundle() — validate and bundle collaborator outputs
#   - compute_risk()        — deterministic risk scoring
#   - HttpFraudModel        — optional external adjustment

from src.risk.signals import (  # noqa: F401
    SignalBundle,
    build_signal_bundle,
)
from src.risk.scorer import classify_tier, compute_risk  # noqa: F401
from src.risk.fraud_model import DisabledFraudModel, HttpFraudModel  # noqa: F401
