import pytest

from dreamgate.utils.clock import ms_to_seconds_ceil
from dreamgate.utils.text_normalizer import clean_dream_text, normalize_for_fingerprint


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Hello   World", "hello world"),
        ("  padded\t\ttext \n", "padded text"),
        ("Line one\r\n\r\nLine two", "line one line two"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_for_fingerprint(raw: str, expected: str) -> None:
    assert normalize_for_fingerprint(raw) == expected


def test_clean_dream_text_keeps_case_and_paragraphs() -> None:
    raw = "  The  Moon\tspoke.\r\n\r\n\r\n\r\nI  answered.  "

    assert clean_dream_text(raw) == "The Moon spoke.\n\nI answered."


@pytest.mark.parametrize(
    ("ms", "seconds"),
    [(1, 1), (999, 1), (1000, 1), (1001, 2), (800, 1), (59_500, 60)],
)
def test_ms_to_seconds_ceil(ms: float, seconds: int) -> None:
    assert ms_to_seconds_ceil(ms) == seconds
