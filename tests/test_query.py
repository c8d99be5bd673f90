import pytest

from arch_search.search.query import extract_important_words, is_technical_term, preprocess_query


@pytest.mark.parametrize(
    "word, expected",
    [
        ("pacman", True),
        ("systemd-networkd", True),
        ("nvidia-470xx", True),
        ("linux-firmware", True),
        ("404", True),
        ("hello", False),
        ("a-b", True),
        ("fine", False),
    ],
)
def test_is_technical_term(word, expected):
    assert is_technical_term(word) is expected


def test_preprocess_drops_filler_and_punctuation():
    assert preprocess_query("How do I fix my Pacman error?") == "fix pacman error"


def test_preprocess_keeps_paths_and_colons():
    assert preprocess_query("error: /etc/fstab mount failed!") == "error: /etc/fstab mount failed"


def test_preprocess_removes_contractions_on_stop_list():
    result = preprocess_query("Xorg doesn't start after upgrade")
    assert result == "xorg start after upgrade"


def test_preprocess_falls_back_to_raw_when_too_little_is_left():
    raw = "please help me, can you do it?"
    assert preprocess_query(raw) == raw


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "???",
        "the a an",
        "pacman: error: failed to commit transaction (conflicting files)",
        "   systemd   unit   failed   ",
    ],
)
def test_preprocess_never_shrinks_below_a_third(raw):
    result = preprocess_query(raw)
    assert result == raw or len(result) * 3 >= len(raw)


def test_extract_important_words():
    assert extract_important_words("Pacman: error 404 while building PKGBUILD") == ["pacman", "404", "pkgbuild"]
    assert extract_important_words("my screen is dark") == []
