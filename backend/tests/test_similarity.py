"""Unit tests for ledger name similarity."""

import unittest

from ledgermatch.matching.similarity import (
    are_day_name_variants,
    are_phonetically_similar,
    best_name_similarity,
    normalize_name,
    phonetic_code,
    similarity,
    strip_titles,
)
from ledgermatch.matching.types import IdentityRecord


class SimilarityTests(unittest.TestCase):
    def test_identical_names_ignore_case_and_titles(self) -> None:
        self.assertEqual(similarity("Kwame Mensah", "kwame mensah"), 1.0)
        self.assertEqual(similarity("Elder Kwame Mensah", "Kwame Mensah"), 1.0)
        self.assertEqual(strip_titles("Nana Yaw Boateng"), "yaw boateng")
        self.assertEqual(normalize_name("Mrs. Ama, Owusu"), "ama owusu")

    def test_empty_names_score_zero(self) -> None:
        self.assertEqual(similarity("", "Kwame Mensah"), 0.0)
        self.assertEqual(similarity("Pastor", "Kwame Mensah"), 0.0)

    def test_day_name_variants_score_below_exact(self) -> None:
        self.assertTrue(are_day_name_variants("Kofi", "Fiifi"))
        self.assertTrue(are_day_name_variants("kwesi", "AKWASI"))
        self.assertFalse(are_day_name_variants("Kofi", "Kwame"))
        self.assertAlmostEqual(similarity("Kofi Mensah", "Fiifi Mensah"), 0.95)

    def test_phonetic_spelling_drift(self) -> None:
        self.assertEqual(phonetic_code("Robert"), "R1630")
        self.assertEqual(phonetic_code("Rupert"), "R1630")
        self.assertEqual(phonetic_code("Kwame"), phonetic_code("Kame"))
        self.assertTrue(are_phonetically_similar("Mensa", "Mensah"))
        self.assertAlmostEqual(similarity("Kwame Mensa", "Kwame Mensah"), 0.925)

    def test_prefix_match_for_truncated_surnames(self) -> None:
        self.assertAlmostEqual(similarity("Yaw Boaten", "Yaw Boateng"), 0.85)

    def test_initials_are_not_scored(self) -> None:
        self.assertEqual(similarity("K. Mensah", "Kwame Mensah"), 0.5)

    def test_scores_stay_in_unit_interval(self) -> None:
        pairs = [
            ("Kwame Kwame Kwame", "Kwame"),
            ("Ama", "Ama Serwaa Owusu Ansah"),
            ("Akosua Adwoa Asante", "Asante Akosua"),
        ]
        for left, right in pairs:
            score = similarity(left, right)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_best_name_similarity_tries_surname_first_orderings(self) -> None:
        record = IdentityRecord(primary_id="TAC001", first_name="Kwame", surname="Mensah", other_names="Kofi")
        self.assertEqual(best_name_similarity("Mensah Kwame Kofi", record), 1.0)
        self.assertEqual(best_name_similarity("Mensah Kwame", record), 1.0)
        self.assertEqual(best_name_similarity("Kwame Mensah", IdentityRecord(primary_id="TAC002")), 0.0)


if __name__ == "__main__":
    unittest.main()
