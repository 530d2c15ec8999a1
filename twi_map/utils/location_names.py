"""Location name normalization shared by every stage of the pipeline.

The extraction step reports the same place with inconsistent casing, padding
and the occasional ``[bracketed]`` name; ``normalize`` folds all of those to
one key. ``to_display_name`` is presentation only.
"""

_BRACKETS = str.maketrans("", "", "[]")


def normalize(name: str) -> str:
    """Strip ``[`` / ``]``, trim, lower-case. Idempotent."""
    return name.translate(_BRACKETS).strip().lower()


def to_display_name(key: str) -> str:
    """Title-case each whitespace-separated word of a key.

    Only the first character of a word is touched, so ``a'ctelios salash``
    becomes ``A'ctelios Salash`` (``str.title`` would give ``A'Ctelios``).
    """
    return " ".join(w[:1].upper() + w[1:] for w in key.split())


def contains_normalized(names: list[str], name: str) -> bool:
    """Return True if ``names`` already holds ``name`` up to normalization."""
    target = normalize(name)
    return any(normalize(n) == target for n in names)
