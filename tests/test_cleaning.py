"""Tests for lexocr.cleaning."""

from __future__ import annotations

import random
import unittest

from lexocr.cleaning import (
    CLEANING_STEPS,
    clean_text,
    collapse_whitespace,
    insert_header_breaks,
    normalize_characters,
    repair_article_headers,
    repair_contractions,
    strip_invisible,
    strip_running_headers,
)

MESSY = (
    "  LOI N° L/2020/001/AN\r\n\r\n\r\n"
    "ARTICLE 1 : La pré\u00adsente loi…  Page 1 sur 3 \u2014 Articte2. "
    "Il s ' applique ; TITRE II dispositions\f\ufb01nales"
)

# Running headers, split contractions and article headers, mixed at random
FRAGMENTS = (
    "Page 3 sur 12",
    "Page 2/9",
    "- 4 -",
    "l '",
    "qu '",
    "il",
    "article",
    "Articte2",
    "ARTICLE 5",
    "TITRE II",
    "texte",
    ".",
    ";",
)


class TestCleanText(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(clean_text(""), "")
        self.assertEqual(clean_text("  \n\n "), "")

    def test_idempotent(self) -> None:
        once = clean_text(MESSY)
        self.assertEqual(clean_text(once), once)

    def test_header_and_page_marker_on_one_line(self) -> None:
        self.assertEqual(clean_text("Page 3 sur 12 - 4 -"), "")
        self.assertEqual(clean_text("fin.\n- 4 - Page 3 sur 12\nsuite"), "fin.\n\nsuite")

    def test_header_inside_split_contraction(self) -> None:
        self.assertEqual(clean_text("selon l Page 3 sur 12 ' article 5"), "selon l'article 5")

    def test_idempotent_on_mixed_fragments(self) -> None:
        rng = random.Random(20240315)
        for _ in range(500):
            raw = "".join(
                rng.choice(FRAGMENTS) + rng.choice((" ", "\n"))
                for _ in range(rng.randint(1, 8))
            )
            once = clean_text(raw)
            with self.subTest(raw=raw):
                self.assertEqual(clean_text(once), once)

    def test_messy_sample(self) -> None:
        cleaned = clean_text(MESSY)
        self.assertTrue(cleaned.startswith("LOI N° L/2020/001/AN\n\nArticle 1 : La présente loi..."))
        self.assertIn("Article 2.", cleaned)
        self.assertIn("s'applique ;\n\nTITRE II", cleaned)
        self.assertNotIn("Page 1 sur 3", cleaned)
        self.assertIn("finales", cleaned)
        self.assertNotIn("\r", cleaned)
        self.assertNotIn("\n\n\n", cleaned)

    def test_step_order(self) -> None:
        self.assertEqual(
            [name for name, _ in CLEANING_STEPS],
            [
                "strip_invisible",
                "normalize_characters",
                "collapse_whitespace",
                "strip_running_headers",
                "repair_contractions",
                "repair_article_headers",
                "insert_header_breaks",
            ],
        )


class TestSteps(unittest.TestCase):
    def test_strip_invisible(self) -> None:
        self.assertEqual(strip_invisible("a\u200bb\x07c\r\nd\fe"), "abc\nd\ne")

    def test_normalize_characters(self) -> None:
        self.assertEqual(
            normalize_characters("œuvre « citée » – l’article\u00a02"),
            "oeuvre \" citée \" - l'article 2",
        )

    def test_collapse_whitespace(self) -> None:
        self.assertEqual(collapse_whitespace("  a \t  b  \n   c\n\n\n\nd  "), "a b\nc\n\nd")

    def test_repair_contractions(self) -> None:
        self.assertEqual(repair_contractions("l ' article et qu' il"), "l'article et qu'il")
        self.assertEqual(repair_contractions("jusqu 'au terme"), "jusqu'au terme")

    def test_article_misspellings(self) -> None:
        self.assertEqual(repair_article_headers("Articte 5"), "Article 5")
        self.assertEqual(repair_article_headers("Artlcle 12 bis"), "Article 12 bis")
        self.assertEqual(repair_article_headers("selon l'articie 3"), "selon l'article 3")

    def test_article_glued_number(self) -> None:
        self.assertEqual(repair_article_headers("Article5"), "Article 5")
        self.assertEqual(repair_article_headers("ARTICLE7"), "Article 7")
        self.assertEqual(repair_article_headers("Artide8"), "Article 8")

    def test_article_word_untouched_elsewhere(self) -> None:
        self.assertEqual(repair_article_headers("Articles 4 et 5"), "Articles 4 et 5")

    def test_running_headers(self) -> None:
        cleaned = strip_running_headers("fin du texte.\nPage 2 sur 10\nArticle 3 suite\n- 4 -\nfin")
        self.assertNotIn("Page 2 sur 10", cleaned)
        self.assertNotIn("- 4 -", cleaned)
        self.assertIn("Article 3 suite", cleaned)

    def test_nested_running_headers(self) -> None:
        self.assertEqual(strip_running_headers("texte Page Page 1 sur 2 3 sur 4 suite"), "texte suite")

    def test_inline_header_break(self) -> None:
        self.assertEqual(
            insert_header_breaks("dispositions contraires. Article 2 La loi"),
            "dispositions contraires.\n\nArticle 2 La loi",
        )

    def test_line_header_break(self) -> None:
        self.assertEqual(
            insert_header_breaks("premier alinéa\nArticle 2 texte"),
            "premier alinéa\n\nArticle 2 texte",
        )
        self.assertEqual(
            insert_header_breaks("fin\nCHAPITRE II"),
            "fin\n\nCHAPITRE II",
        )

    def test_inline_citation_not_broken(self) -> None:
        text = "conformément à l'Article 4 de la loi"
        self.assertEqual(insert_header_breaks(text), text)


if __name__ == "__main__":
    unittest.main()
