"""
tests/test_explanations.py
===========================
Explanation Generator Tests

Test categories:
    1. Finding order and count (lighting line is conditional)
    2. Face finding wording (single / multiple / none)
    3. Field findings (value vs failure notice)
    4. Five-way closing bands and their boundaries
    5. Determinism
"""

import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.explain.explanation_generator import (
    CLOSING_BANDS,
    closing_lines,
    generate_explanation,
)
from src.risk.signals import SignalBundle
from src.schemas.verification import IdentityFields


def _bundle(**overrides) -> SignalBundle:
    values = dict(
        face_detected=True,
        face_count=1,
        tampered=False,
        suspicious_content=False,
        blurry=False,
        good_lighting=True,
        document_like=True,
        image_width=1000,
        image_height=630,
        fields=IdentityFields(name="JOHN SMITH", id_number="ID1234567", dob="01/02/1990"),
    )
    values.update(overrides)
    return SignalBundle(**values)


# ===================================================================
# 1. Order and count
# ===================================================================


class TestStructure(unittest.TestCase):

    def test_eight_lines_with_good_lighting(self):
        lines = generate_explanation(_bundle(), 10)
        self.assertEqual(len(lines), 8)
        self.assertNotIn("Lighting", " ".join(lines))

    def test_nine_lines_with_poor_lighting(self):
        lines = generate_explanation(_bundle(good_lighting=False), 10)
        self.assertEqual(len(lines), 9)
        self.assertTrue(lines[3].startswith("Lighting is poor"))

    def test_fixed_order(self):
        lines = generate_explanation(_bundle(good_lighting=False), 10)
        self.assertIn("face", lines[0].lower())
        self.assertIn("tampering", lines[1].lower())
        self.assertIn("sharp", lines[2].lower())
        self.assertTrue(lines[4].startswith("Name"))
        self.assertTrue(lines[5].startswith("ID number"))
        self.assertTrue(lines[6].startswith("Date of birth"))
        self.assertTrue(lines[7].startswith("Overall assessment"))
        self.assertTrue(lines[8].startswith("Recommendation"))

    def test_tamper_and_blur_wording(self):
        lines = generate_explanation(_bundle(tampered=True, blurry=True), 90)
        self.assertIn("Possible tampering", lines[1])
        self.assertIn("blurry", lines[2])


# ===================================================================
# 2. Face finding
# ===================================================================


class TestFaceFinding(unittest.TestCase):

    def test_single(self):
        line = generate_explanation(_bundle(), 0)[0]
        self.assertEqual(line, "Single face detected on the document.")

    def test_multiple(self):
        line = generate_explanation(_bundle(face_count=3), 0)[0]
        self.assertTrue(line.startswith("Multiple faces detected (3)"))

    def test_none(self):
        line = generate_explanation(_bundle(face_detected=False, face_count=0), 0)[0]
        self.assertTrue(line.startswith("No face detected"))

    def test_all_three_distinct(self):
        lines = {
            generate_explanation(_bundle(), 0)[0],
            generate_explanation(_bundle(face_count=2), 0)[0],
            generate_explanation(_bundle(face_detected=False, face_count=0), 0)[0],
        }
        self.assertEqual(len(lines), 3)


# ===================================================================
# 3. Field findings
# ===================================================================


class TestFieldFindings(unittest.TestCase):

    def test_present_values(self):
        lines = generate_explanation(_bundle(), 0)
        self.assertEqual(lines[3], "Name extracted: JOHN SMITH")
        self.assertEqual(lines[4], "ID number extracted: ID1234567")
        self.assertEqual(lines[5], "Date of birth extracted: 01/02/1990")

    def test_failure_notices(self):
        lines = generate_explanation(_bundle(fields=IdentityFields()), 0)
        self.assertEqual(lines[3], "Name could not be extracted from the document.")
        self.assertEqual(lines[4], "ID number could not be extracted from the document.")
        self.assertEqual(lines[5], "Date of birth could not be extracted from the document.")


# ===================================================================
# 4. Closing bands
# ===================================================================


class TestClosingBands(unittest.TestCase):

    def test_five_bands(self):
        self.assertEqual([lower for lower, _, _ in CLOSING_BANDS], [80, 60, 40, 20, 0])

    def test_band_boundaries(self):
        expected = {
            100: 0, 80: 0,
            79: 1, 60: 1,
            59: 2, 40: 2,
            39: 3, 20: 3,
            19: 4, 0: 4,
        }
        for score, band in expected.items():
            with self.subTest(score=score):
                _, assessment, recommendation = CLOSING_BANDS[band]
                self.assertEqual(closing_lines(score), (assessment, recommendation))

    def test_closing_lines_are_last_two(self):
        lines = generate_explanation(_bundle(), 65)
        self.assertEqual(tuple(lines[-2:]), closing_lines(65))

    def test_band_finer_than_tier(self):
        # 30 and 50 share the MEDIUM tier but not the narrative band
        self.assertNotEqual(closing_lines(30), closing_lines(50))


# ===================================================================
# 5. Determinism
# ===================================================================


class TestDeterminism(unittest.TestCase):

    def test_same_input_same_output(self):
        bundle = _bundle(blurry=True, good_lighting=False, face_count=2)
        self.assertEqual(generate_explanation(bundle, 55), generate_explanation(bundle, 55))


if __name__ == "__main__":
    unittest.main()
