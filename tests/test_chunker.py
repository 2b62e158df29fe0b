"""Tests for the sliding-window chunker."""

import pytest

from services.rag.Chunker import split_text, validate_chunking
from shared.errors import ValidationError


def _letters(length: int) -> str:
    return "".join(chr(97 + i % 26) for i in range(length))


def test_window_offsets_and_lengths():
    windows = split_text("a" * 2500, 1000, 200)

    assert [w.start for w in windows] == [0, 800, 1600, 2400]
    assert [len(w.text) for w in windows] == [1000, 1000, 900, 100]
    assert [w.index for w in windows] == [0, 1, 2, 3]


def test_windows_reconstruct_the_text():
    text = _letters(2500)
    windows = split_text(text, 1000, 200)

    rebuilt = ""
    for window in windows:
        rebuilt = rebuilt[:window.start] + window.text
    assert rebuilt == text


def test_consecutive_windows_share_the_overlap():
    text = _letters(4321)
    windows = split_text(text, 1000, 200)

    full = [w for w in windows if len(w.text) == 1000]
    assert len(full) >= 3
    for previous, current in zip(full, full[1:]):
        assert current.text[:200] == previous.text[-200:]


def test_blank_windows_are_dropped_and_text_trimmed():
    # windows: [0, 10) "  hello   ", [10, 20) blank, [20, 25) "world"
    text = "  hello   " + " " * 10 + "world"
    windows = split_text(text, 10, 0)

    assert [w.text for w in windows] == ["hello", "world"]
    assert [w.index for w in windows] == [0, 1]
    assert [(w.start, w.end) for w in windows] == [(0, 10), (20, 25)]


def test_words_split_across_windows_stay_split():
    windows = split_text("  hello  " + " " * 20 + "world", 10, 0)

    assert [w.text for w in windows] == ["hello", "w", "orld"]


def test_empty_text_yields_no_windows():
    assert split_text("", 1000, 200) == []
    assert split_text("   \n\t ", 1000, 200) == []


def test_short_text_is_a_single_window():
    windows = split_text("short document", 1000, 200)
    assert len(windows) == 1
    assert windows[0].text == "short document"
    assert (windows[0].start, windows[0].end) == (0, 14)


@pytest.mark.parametrize(
    "chunk_size, overlap",
    [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)],
)
def test_invalid_parameters_are_rejected(chunk_size, overlap):
    with pytest.raises(ValidationError):
        validate_chunking(chunk_size, overlap)
    with pytest.raises(ValidationError):
        split_text("some text", chunk_size, overlap)
