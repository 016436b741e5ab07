# src/api/__init__.py
# =====================
# API Layer — DocVerify
#
# Responsibility:
#   - Expose POST /api/verify (multipart document image upload)
#   - Expose read-back endpoints for stored verifications (decrypted)
#   - Expose /api/stats and /api/health
