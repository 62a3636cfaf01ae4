"""Small string helpers shared by the kernel and the shell."""

from __future__ import annotations

from itertools import zip_longest

_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_UPPER = str.maketrans("abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ")
_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")
_VOWELS = frozenset("aeiou")


def _trunc_divmod10(num: int) -> tuple[int, int]:
    """Divide by ten rounding toward zero, as fixed-width integer division does."""
    quotient = abs(num) // 10
    if num < 0:
        quotient = -quotient
    return quotient, num - quotient * 10


def int_to_string(num: int, dim: int) -> str:
    """Render ``num`` in decimal into a buffer of ``dim`` cells (one kept for the terminator).

    When the number has more digits than fit, the least significant ones are kept.
    Negative numbers are rendered digit by digit with truncating division, so their
    "digits" fall below ``'0'`` exactly as the fixed-width routine produces them.
    """
    if num == 0:
        return "0" if dim > 1 else ""
    chars: list[str] = []
    while num != 0 and len(chars) < dim - 1:
        num, digit = _trunc_divmod10(num)
        chars.append(chr(ord("0") + digit))
    return "".join(reversed(chars))


def uint_to_base(value: int, base: int) -> str:
    """Render a non-negative integer in ``base`` using upper-case letters past nine."""
    if not 2 <= base <= len(_DIGITS):
        raise ValueError(f"base must be between 2 and {len(_DIGITS)}, got {base}")
    if value < 0:
        raise ValueError("value must be non-negative")
    chars: list[str] = []
    while True:
        value, remainder = divmod(value, base)
        chars.append(_DIGITS[remainder])
        if value == 0:
            break
    return "".join(reversed(chars))


def c_strcmp(s1: str, s2: str) -> int:
    """Compare like the classic terminator-based routine: 0 when equal, else the code difference."""
    s1 = s1.split("\0", 1)[0]
    s2 = s2.split("\0", 1)[0]
    for a, b in zip_longest(s1, s2, fillvalue="\0"):
        if a != b:
            return ord(a) - ord(b)
    return 0


def parse_command_arg(line: str) -> list[str]:
    """Split a command line into its space-separated words."""
    line = line.split("\0", 1)[0]
    return [word for word in line.split(" ") if word]


def to_upper(c: str) -> str:
    """Upper-case ASCII letters only, leaving every other character alone."""
    return c.translate(_UPPER)


def to_lower(c: str) -> str:
    """Lower-case ASCII letters only, leaving every other character alone."""
    return c.translate(_LOWER)


def is_vowel(c: str) -> bool:
    """Tell whether a single character is an ASCII vowel of either case."""
    return to_lower(c) in _VOWELS