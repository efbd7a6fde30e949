import pytest

from learn_turkic import similarity
from learn_turkic.similarity import cognate_score, edit_distance, graphemes


def test_edit_distance_single_substitution():
    assert edit_distance("kitap", "kitab") == 1


@pytest.mark.parametrize("word", ["", "su", "кітап", "çörək", "koʻz"])
def test_edit_distance_identity(word):
    assert edit_distance(word, word) == 0


@pytest.mark.parametrize("a,b", [
    ("kitap", "kitob"),
    ("ekmek", "икмәк"),
    ("", "baş"),
    ("anne", "ana"),
])
def test_edit_distance_symmetric(a, b):
    assert edit_distance(a, b) == edit_distance(b, a)


def test_edit_distance_against_empty_is_length():
    assert edit_distance("", "баш") == 3
    assert edit_distance("suv", "") == 3


def test_edit_distance_triangle_inequality():
    a, b, c = "kitap", "kitob", "китеп"
    assert edit_distance(a, c) <= edit_distance(a, b) + edit_distance(b, c)


def test_combining_marks_count_as_one_character():
    decomposed = "c\u0327o\u0308r\u0259k"  # ç and ö written with combining marks
    assert len(graphemes(decomposed)) == 5
    assert edit_distance(decomposed, "\u00e7\u00f6r\u0259k") == 0


def test_cluster_without_precomposed_form_stays_together():
    # q + combining dot below has no precomposed code point
    assert graphemes("q\u0323a") == ["q\u0323", "a"]
    assert edit_distance("q\u0323a", "qa") == 1


def test_similarity_bounds():
    assert similarity.similarity("", "") == 1.0
    assert similarity.similarity("su", "su") == 1.0
    assert similarity.similarity("abc", "xyz") == 0.0
    value = similarity.similarity("kitap", "kitob")
    assert 0.0 <= value <= 1.0
    assert value == pytest.approx(0.6)


def test_similarity_uses_longer_length():
    assert similarity.similarity("su", "suu") == pytest.approx(1 - 1 / 3)


def test_cognate_score_degenerate_inputs():
    assert cognate_score([]) == 1.0
    assert cognate_score(["su"]) == 1.0


def test_cognate_score_identical_forms():
    assert cognate_score(["su", "su", "su"]) == 1.0


def test_cognate_score_is_mean_of_pairs():
    # pairs: (su, suv)=2/3, (su, su)=1, (suv, su)=2/3
    assert cognate_score(["su", "suv", "su"]) == pytest.approx((2 / 3 + 1 + 2 / 3) / 3)


def test_score_bands():
    assert similarity.score_band(0.8) == "high"
    assert similarity.score_band(0.79) == "medium"
    assert similarity.score_band(0.5) == "medium"
    assert similarity.score_band(0.1) == "low"
    assert similarity.color_for_score(0.95) == "#16A085"
    assert similarity.color_for_score(0.6) == "#F39C12"
    assert similarity.color_for_score(0.0) == "#E74C3C"


def test_word_cognate_score_uses_requested_languages():
    class FakeWord:
        forms = {"kk": "су", "tr": "su", "az": "su", "uz": "suv", "ky": "суу", "tt": "су"}

        def native(self, code):
            return self.forms.get(code, "")

    assert similarity.word_cognate_score(FakeWord(), ["tr", "az"]) == 1.0
    assert similarity.word_cognate_score(FakeWord(), ["tr", "uz"]) == pytest.approx(2 / 3)
    assert 0.0 < similarity.word_cognate_score(FakeWord()) < 1.0


def _reference_distance(a, b):
    rows = [list(range(len(b) + 1))]
    for i, ca in enumerate(a, start=1):
        row = [i]
        for j, cb in enumerate(b, start=1):
            row.append(min(rows[-1][j] + 1, row[j - 1] + 1, rows[-1][j - 1] + (ca != cb)))
        rows.append(row)
    return rows[-1][-1]


@pytest.mark.parametrize("a,b", [
    ("kitten", "sitting"),
    ("flaw", "lawn"),
    ("ekmek", "ikmek"),
    ("anne", "ana"),
    ("saturday", "sunday"),
    ("abcdef", "fedcba"),
    ("nan", "banana"),
])
def test_edit_distance_matches_reference(a, b):
    assert edit_distance(a, b) == _reference_distance(a, b)
