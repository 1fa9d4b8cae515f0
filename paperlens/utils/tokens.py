"""Character-class token estimation.

Context budgets are enforced with an approximation rather than a real
tokenizer: ASCII text runs at about 4 characters per token, CJK ideographs
and kana/hangul at about 1.5 characters per token, and everything else
(accented Latin, Greek, math symbols) at about 2 characters per token.

The estimate is computed from per-class character tallies.  Tallies add up
exactly under concatenation, which lets the extractor grow a context page by
page and know the estimate of the joined text without re-scanning it.
"""

from __future__ import annotations

from dataclasses import dataclass

# (start, end) inclusive code point ranges counted as CJK.
_CJK_RANGES: tuple[tuple[int, int], ...] = (
    (0x4E00, 0x9FFF),    # CJK Unified Ideographs
    (0x3400, 0x4DBF),    # Extension A
    (0x20000, 0x2A6DF),  # Extension B
    (0x3040, 0x309F),    # Hiragana
    (0x30A0, 0x30FF),    # Katakana
    (0xAC00, 0xD7AF),    # Hangul Syllables
)


def is_cjk(char: str) -> bool:
    """Return ``True`` if *char* falls in one of the CJK ranges."""
    code = ord(char)
    return any(start <= code <= end for start, end in _CJK_RANGES)


@dataclass(frozen=True)
class CharTally:
    """Per-class character counts for a span of text.

    The token estimate is ``floor(ascii/4 + other/2 + cjk/1.5)``, computed in
    twelfths so the result is exact integer arithmetic.
    """

    ascii: int = 0
    cjk: int = 0
    other: int = 0

    @classmethod
    def of(cls, text: str) -> CharTally:
        ascii_count = cjk_count = other_count = 0
        for char in text:
            if char.isascii():
                ascii_count += 1
            elif is_cjk(char):
                cjk_count += 1
            else:
                other_count += 1
        return cls(ascii=ascii_count, cjk=cjk_count, other=other_count)

    def __add__(self, other: CharTally) -> CharTally:
        return CharTally(
            ascii=self.ascii + other.ascii,
            cjk=self.cjk + other.cjk,
            other=self.other + other.other,
        )

    @property
    def tokens(self) -> int:
        # 1/4 = 3/12, 1/2 = 6/12, 1/1.5 = 8/12
        return (3 * self.ascii + 6 * self.other + 8 * self.cjk) // 12


def estimate_tokens(text: str) -> int:
    """Estimate the token count of *text*.

    Args:
        text: Any text span; the empty string estimates to 0.

    Returns:
        A deterministic, non-negative integer estimate.
    """
    if not text:
        return 0
    return CharTally.of(text).tokens
