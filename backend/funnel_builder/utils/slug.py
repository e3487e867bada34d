import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[-\s_]+")


def slugify(value: str) -> str:
    """ASCII, lower-case, hyphen separated. "My Funnel!" -> "my-funnel"."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = _NON_WORD.sub("", value.lower())
    return _SEPARATORS.sub("-", value).strip("-")


def unique_slug(base: str, exists) -> str:
    """
    Append -2, -3, ... to `base` until `exists(candidate)` is False.
    Empty bases fall back to "funnel".
    """
    base = base or "funnel"
    candidate = base
    suffix = 2

    while exists(candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1

    return candidate
