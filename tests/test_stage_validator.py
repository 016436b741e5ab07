"""
tests/test_stage_validator.py
==============================
Stage Validator Tests — collaborator and core output contracts

Tests verify that each validator accepts well-formed output and raises
StageVerificationError, naming the stage, for malformed output.
"""

import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.schemas.verification import RiskTier, TextLine
from src.stage_validator import (
    StageVerificationError,
    verify_assessment,
    verify_face_detection,
    verify_narrative,
    verify_quality_analysis,
    verify_tamper_analysis,
    verify_text_lines,
)


class TestFaceDetection(unittest.TestCase):

    def test_valid(self):
        verify_face_detection({"face_count": 1, "any_face": True, "highest_confidence": 99.1})
        verify_face_detection({"face_count": 0, "any_face": False, "highest_confidence": None})

    def test_confidence_optional(self):
        verify_face_detection({"face_count": 2, "any_face": True})

    def test_not_a_dict(self):
        with self.assertRaises(StageVerificationError) as ctx:
            verify_face_detection([1])
        self.assertEqual(ctx.exception.stage, "face_detection")

    def test_inconsistent_flag(self):
        with self.assertRaises(StageVerificationError):
            verify_face_detection({"face_count": 0, "any_face": True})

    def test_negative_count(self):
        with self.assertRaises(StageVerificationError):
            verify_face_detection({"face_count": -1, "any_face": False})

    def test_confidence_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_face_detection({"face_count": 1, "any_face": True, "highest_confidence": 140.0})


class TestTamperAnalysis(unittest.TestCase):

    def test_valid(self):
        verify_tamper_analysis(
            {"tampered": False, "suspicious_content": False, "width": 800, "height": 600}
        )

    def test_missing_dimension(self):
        with self.assertRaises(StageVerificationError) as ctx:
            verify_tamper_analysis({"tampered": False, "suspicious_content": False, "width": 800})
        self.assertIn("height", ctx.exception.message)

    def test_string_flag(self):
        with self.assertRaises(StageVerificationError):
            verify_tamper_analysis(
                {"tampered": "false", "suspicious_content": False, "width": 1, "height": 1}
            )


class TestQualityAnalysis(unittest.TestCase):

    def test_valid(self):
        verify_quality_analysis({"blurry": True, "good_lighting": False, "document_like": True})

    def test_missing_key(self):
        with self.assertRaises(StageVerificationError):
            verify_quality_analysis({"blurry": True, "good_lighting": False})


class TestTextLines(unittest.TestCase):

    def test_valid(self):
        verify_text_lines([TextLine("JOHN SMITH", 91.5), TextLine("ID1234567", 80.0)])

    def test_empty_list_allowed(self):
        verify_text_lines([])

    def test_tuple_allowed(self):
        verify_text_lines((TextLine("JOHN SMITH", 91.5),))
        verify_text_lines(())

    def test_not_a_list(self):
        with self.assertRaises(StageVerificationError):
            verify_text_lines("JOHN SMITH")

    def test_other_iterables_rejected(self):
        line = TextLine("JOHN SMITH", 91.5)
        for lines in ({line}, iter([line]), b"JOHN"):
            with self.subTest(lines=type(lines).__name__):
                with self.assertRaises(StageVerificationError):
                    verify_text_lines(lines)

    def test_wrong_item_type(self):
        with self.assertRaises(StageVerificationError):
            verify_text_lines([{"content": "JOHN", "confidence_percent": 90.0}])

    def test_confidence_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_text_lines([TextLine("JOHN", 101.0)])


class TestAssessment(unittest.TestCase):

    def _valid(self, **overrides):
        values = {"risk_score": 45, "risk_level": RiskTier.MEDIUM, "model_adjustment": 0}
        values.update(overrides)
        return values

    def test_valid(self):
        verify_assessment(self._valid())

    def test_score_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_assessment(self._valid(risk_score=101, risk_level=RiskTier.HIGH))

    def test_tier_mismatch(self):
        with self.assertRaises(StageVerificationError):
            verify_assessment(self._valid(risk_score=70, risk_level=RiskTier.MEDIUM))

    def test_tier_must_be_enum(self):
        with self.assertRaises(StageVerificationError):
            verify_assessment(self._valid(risk_level="MEDIUM"))

    def test_adjustment_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_assessment(self._valid(model_adjustment=30))


class TestNarrative(unittest.TestCase):

    def test_valid_lengths(self):
        verify_narrative(["line"] * 8)
        verify_narrative(["line"] * 9)

    def test_wrong_length(self):
        with self.assertRaises(StageVerificationError):
            verify_narrative(["line"] * 7)

    def test_blank_line(self):
        with self.assertRaises(StageVerificationError):
            verify_narrative(["line"] * 7 + ["  "])


if __name__ == "__main__":
    unittest.main()
