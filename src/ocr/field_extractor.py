"""
src/ocr/field_extractor.py
===========================
Identity Field Extractor — DocVerify

Responsibility:
    - Accept confidence-filtered OCR lines in reading order
    - Classify them into typed identity fields (name, id number, date of
      birth, expiry date, address) without bounding boxes or a schema
    - Never overwrite a field once it is set (first match wins)

Extraction strategy:
    1. Structured pass — every line is offered to each field matcher in a
       fixed priority order (name → id_number → dob → expiry_date →
       address). A matcher only runs while its field is unset; the scan
       always continues for the remaining fields.
    2. Fallback pass — only when the structured pass set nothing. Looks for
       labelled lines ("name", "id", "document", ...) and bare dates. It
       scans the whole sequence and never sets address or expiry_date.

This module does NOT:
    - Call the OCR engine (handled by src.ocr.tesseract_client)
    - Validate that extracted values are genuine
    - Score risk or encrypt values
"""

import logging
import re
from enum import Enum
from typing import Callable, Optional, Sequence

from src.schemas.verification import IdentityFields, TextLine

logger = logging.getLogger("docverify.ocr.field_extractor")


class IdentityField(str, Enum):
    """Closed set of identity field kinds, valued by IdentityFields attribute."""

    NAME = "name"
    ID_NUMBER = "id_number"
    DOB = "dob"
    EXPIRY_DATE = "expiry_date"
    ADDRESS = "address"


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_NAME_KEYWORDS: tuple[str, ...] = ("name", "surname", "given name")
_EXPIRY_KEYWORDS: tuple[str, ...] = ("expiry", "expire", "valid")
_ADDRESS_INDICATORS: tuple[str, ...] = (
    "street", "st.", "road", "rd.", "ave.", "avenue",
    "drive", "dr.", "lane", "ln.",
)

_NAME_TOKEN: re.Pattern[str] = re.compile(r"[A-Za-z]+")
_LETTER: re.Pattern[str] = re.compile(r"[A-Za-z]")
_DIGIT: re.Pattern[str] = re.compile(r"\d")
_NON_ALNUM: re.Pattern[str] = re.compile(r"[^A-Za-z0-9]")

# DD/MM/YYYY, MM-DD-YY, YYYY-MM-DD ... not embedded in a longer digit run
_DATE_PATTERN: re.Pattern[str] = re.compile(
    r"(?<!\d)"
    r"(?:\d{1,2}[/-]\d{1,2}[/-]\d{2,4}|\d{2,4}[/-]\d{1,2}[/-]\d{1,2})"
    r"(?!\d)"
)

_ID_KEYWORD: re.Pattern[str] = re.compile(r"\b(?:id|identification|document)\b")
# Greedy: strips everything through the last keyword occurrence
_ID_KEYWORD_PREFIX: re.Pattern[str] = re.compile(r".*\b(?:id|identification|document)\b")


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


def is_likely_name(text: str) -> bool:
    """1–3 whitespace-separated tokens, each made only of letters."""
    tokens = text.split()
    if not 1 <= len(tokens) <= 3:
        return False
    return all(_NAME_TOKEN.fullmatch(token) for token in tokens)


def is_likely_id_number(text: str) -> bool:
    """At least one letter and one digit, and more than 4 alphanumerics."""
    if not (_LETTER.search(text) and _DIGIT.search(text)):
        return False
    return len(_NON_ALNUM.sub("", text)) > 4


def find_date(text: str) -> Optional[str]:
    """Return the first date-shaped substring of ``text``, if any."""
    match = _DATE_PATTERN.search(text)
    return match.group(0) if match else None


def _contains_any(lowered: str, keywords: Sequence[str]) -> bool:
    return any(keyword in lowered for keyword in keywords)


# ---------------------------------------------------------------------------
# Per-field matchers — (lines, index) → value or None
# ---------------------------------------------------------------------------

_Matcher = Callable[[list[str], int], Optional[str]]


def _match_name(lines: list[str], i: int) -> Optional[str]:
    if not _contains_any(lines[i].lower(), _NAME_KEYWORDS):
        return None
    if i + 1 >= len(lines):
        return None
    candidate = lines[i + 1]
    return candidate if is_likely_name(candidate) else None


def _match_id_number(lines: list[str], i: int) -> Optional[str]:
    line = lines[i]
    return line.upper() if is_likely_id_number(line) else None


def _match_dob(lines: list[str], i: int) -> Optional[str]:
    return find_date(lines[i])


def _match_expiry_date(lines: list[str], i: int) -> Optional[str]:
    line = lines[i]
    if not _contains_any(line.lower(), _EXPIRY_KEYWORDS):
        return None
    return find_date(line)


def _match_address(lines: list[str], i: int) -> Optional[str]:
    line = lines[i]
    # Date lines carry digits but are never addresses
    if find_date(line) is not None:
        return None
    if _contains_any(line.lower(), _ADDRESS_INDICATORS) or _DIGIT.search(line):
        return line
    return None


# Fixed priority order, tried for every line
FIELD_MATCHERS: tuple[tuple[IdentityField, _Matcher], ...] = (
    (IdentityField.NAME, _match_name),
    (IdentityField.ID_NUMBER, _match_id_number),
    (IdentityField.DOB, _match_dob),
    (IdentityField.EXPIRY_DATE, _match_expiry_date),
    (IdentityField.ADDRESS, _match_address),
)


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------


def _structured_pass(lines: list[str]) -> IdentityFields:
    result = IdentityFields()
    for i in range(len(lines)):
        for kind, matcher in FIELD_MATCHERS:
            if getattr(result, kind.value) is not None:
                continue
            value = matcher(lines, i)
            if value is not None:
                setattr(result, kind.value, value)
                logger.debug("Line %d matched %s.", i, kind.value)
    return result


def _fallback_pass(lines: list[str]) -> IdentityFields:
    result = IdentityFields()
    for i, line in enumerate(lines):
        lowered = line.lower()

        if _contains_any(lowered, _NAME_KEYWORDS):
            if result.name is None and i + 1 < len(lines) and is_likely_name(lines[i + 1]):
                result.name = lines[i + 1]
        elif _ID_KEYWORD.search(lowered) and is_likely_id_number(
            _ID_KEYWORD_PREFIX.sub("", lowered, count=1).strip()
        ):
            if result.id_number is None:
                result.id_number = _ID_KEYWORD_PREFIX.sub("", lowered, count=1).strip().upper()
        elif result.dob is None:
            result.dob = find_date(line)
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_identity_fields(lines: Sequence[TextLine]) -> IdentityFields:
    """
    Classify OCR lines into identity fields.

    Args:
        lines: Confidence-filtered OCR lines in reading order.

    Returns:
        IdentityFields with unset fields left as None.
    """
    texts = [line.content.strip() for line in lines]

    fields = _structured_pass(texts)
    if fields.is_empty():
        logger.info("Structured pass found no fields — running fallback pass.")
        fields = _fallback_pass(texts)

    logger.info(
        "Field extraction complete: %d lines, fields present=%s.",
        len(texts), fields.present(),
    )
    return fields
