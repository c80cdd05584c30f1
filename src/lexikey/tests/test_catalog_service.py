"""Tests for the word catalog and phonics groups."""
import json

import pytest

from conftest import make_words
from lexikey.models.engine_models import PhonicsGroup
from lexikey.services.catalog_service import JsonCatalogSource, WordCatalog
from lexikey.services.phonics import generic_groups, matches_group, to_generic_group


@pytest.mark.parametrize("tag,group", [
    ("cvc-short-a", PhonicsGroup.CVC),
    ("silent-e-i", PhonicsGroup.SILENT_E),
    ("silent-kn", PhonicsGroup.SILENT_E),
    ("digraph-sh", PhonicsGroup.DIGRAPHS),
    ("blends-str", PhonicsGroup.BLENDS),
    ("end-blends-nd", PhonicsGroup.BLENDS),
    ("vowel-team-ai", PhonicsGroup.VOWEL_TEAMS),
    ("r-controlled-ar", PhonicsGroup.R_CONTROLLED),
    ("diphthong-oi", PhonicsGroup.DIPHTHONGS),
    ("reversal-b-d", PhonicsGroup.REVERSALS),
    ("multi-syllable", PhonicsGroup.MULTI_SYLLABLE),
    ("cvc", PhonicsGroup.CVC),
])
def test_tag_to_generic_group(tag, group) -> None:
    """Catalog tags map to their generic group by prefix."""
    assert to_generic_group(tag) == group
    assert matches_group(tag, group)


@pytest.mark.parametrize("tag", ["glued-ng", "soft-c", "trigraph-tch", "suffix-ing", ""])
def test_tag_without_group(tag) -> None:
    """Tags outside the generic groups map to nothing."""
    assert to_generic_group(tag) is None


@pytest.mark.parametrize("tag", ["cvcish", "digraphic", "blendshape", "vowel-teamwork", "reversals-x", "diphthongy"])
def test_prefix_requires_hyphen(tag) -> None:
    """A bare group word at the start of a tag is not a match."""
    assert to_generic_group(tag) is None
    assert not any(matches_group(tag, group) for group in PhonicsGroup)


@pytest.mark.parametrize("group", list(PhonicsGroup))
def test_generic_tag_matches_own_group(group) -> None:
    """Placement words tagged with a generic group belong to it."""
    assert to_generic_group(group.value) == group
    assert matches_group(group.value, group)


def test_generic_groups() -> None:
    """Several tags collapse to their distinct groups."""
    tags = ["digraph-sh", "digraph-ch", "glued-ng", "blends-r"]
    assert generic_groups(tags) == {PhonicsGroup.DIGRAPHS, PhonicsGroup.BLENDS}


def test_bundled_catalog(catalog) -> None:
    """The bundled word list loads with unique words over levels 1 to 10."""
    assert len(catalog) == 100
    assert catalog.max_difficulty == 10
    assert {w.difficulty for w in catalog} == set(range(1, 11))
    assert len({w.text.lower() for w in catalog}) == len(catalog)

    cat = catalog.get_by_text("CAT")
    assert cat.id == "w001"
    assert cat.phonics_group == "cvc-short-a"
    assert cat.sentence_context == "The cat sat on the mat."


def test_catalog_drops_duplicate_words() -> None:
    """Only the first item for each word is kept."""
    catalog = WordCatalog(make_words([("cat", 1, "cvc"), ("Cat", 4, "cvc"), ("dog", 1, "cvc")]))
    assert len(catalog) == 2
    assert catalog.get_by_text("cat").difficulty == 1


def test_catalog_queries() -> None:
    """Difficulty and group queries return matching items in order."""
    catalog = WordCatalog(make_words([
        ("cat", 1, "cvc-short-a"),
        ("ship", 4, "digraph-sh"),
        ("frog", 2, "blends-r"),
        ("chin", 4, "digraph-ch"),
    ]))
    assert [w.text for w in catalog.by_difficulty(4)] == ["ship", "chin"]
    assert [w.text for w in catalog.in_groups({PhonicsGroup.DIGRAPHS})] == ["ship", "chin"]
    assert catalog.in_groups(set()) == []
    assert catalog.get_by_text("moon") is None


def test_empty_catalog() -> None:
    """An empty catalog has no maximum difficulty."""
    assert WordCatalog([]).max_difficulty == 0


def test_json_source(tmp_path) -> None:
    """Records are read from a JSON file."""
    path = tmp_path / "words.json"
    path.write_text(json.dumps([
        {"id": "a1", "word": "cat", "difficultyLevel": 1, "phonicsGroup": "cvc-short-a"},
        {"id": "a2", "word": "ship", "difficultyLevel": "4", "phonicsGroup": "digraph-sh",
         "sentenceContext": "A ship."},
    ]))
    words = JsonCatalogSource(path).all_words()
    assert [(w.id, w.text, w.difficulty) for w in words] == [("a1", "cat", 1), ("a2", "ship", 4)]
    assert words[1].sentence_context == "A ship."


def test_json_source_rejects_bad_records(tmp_path) -> None:
    """A record missing required fields is an error."""
    path = tmp_path / "words.json"
    path.write_text(json.dumps([{"id": "a1", "word": "cat"}]))
    with pytest.raises(ValueError, match="Invalid word record"):
        JsonCatalogSource(path).all_words()
