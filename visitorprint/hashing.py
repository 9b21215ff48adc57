"""
Deterministic string hashing and visitor ID synthesis.

cyrb53 is a fast, non-cryptographic 53-bit hash. Output must stay identical
to the browser implementation so stored visitor IDs remain comparable, which
means emulating 32-bit wraparound multiplication and hashing UTF-16 code
units rather than Python code points.
"""

from typing import Iterator

MASK_32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit wraparound multiply, returned as an unsigned 32-bit value."""
    return ((a & MASK_32) * (b & MASK_32)) & MASK_32


def _utf16_units(text: str) -> Iterator[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def cyrb53(text: str, seed: int = 0) -> int:
    """
    Hash a string into a non-negative integer below 2**53.

    Args:
        text: String to hash
        seed: Optional seed; different seeds give independent hashes

    Returns:
        Integer in [0, 2**53)
    """
    h1 = (0xDEADBEEF ^ seed) & MASK_32
    h2 = (0x41C6CE57 ^ seed) & MASK_32

    for ch in _utf16_units(text):
        h1 = _imul(h1 ^ ch, 2654435761)
        h2 = _imul(h2 ^ ch, 1597334677)

    # h2 must be mixed with the already-updated h1
    h1 = _imul(h1 ^ (h1 >> 16), 2246822507) ^ _imul(h2 ^ (h2 >> 13), 3266489909)
    h2 = _imul(h2 ^ (h2 >> 16), 2246822507) ^ _imul(h1 ^ (h1 >> 13), 3266489909)

    return 4294967296 * (h2 & 2097151) + h1


def coerce_source(value) -> str:
    """Render an entropy value the way it is joined into the ID input."""
    display = getattr(value, "display", None)
    if display is not None:
        value = display
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def synthesize_id(*sources) -> str:
    """
    Combine entropy sources into an uppercase hex visitor ID.

    Sources are joined with '-' without escaping, so ("a-b", "c") and
    ("a", "b-c") produce the same ID.
    """
    combined = "-".join(coerce_source(s) for s in sources)
    return format(cyrb53(combined), "X")
