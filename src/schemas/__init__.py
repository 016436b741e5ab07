# src/schemas/__init__.py
# ========================
# Data Model — DocVerify
#
# Responsibility:
#   - Typed values passed between pipeline stages (TextLine, IdentityFields,
#     RiskAssessment)
#   - The persisted VerificationRecord and its camelCase storage layout
#
# Optional identity fields are None when unset, never "".

from src.schemas.verification import (  # noqa: F401
    IdentityFields,
    RiskAssessment,
    RiskTier,
    TextLine,
    VerificationRecord,
)
