import re
from typing import Any, Callable, Optional

_NUMERIC_ID = re.compile(r"[0-9]+")

def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")

def numeric_id(identifier: Any) -> Optional[int]:
    """The primary key an identifier names, or None when it is a slug.

    Only ASCII digits count; "01" and "1" name the same row.
    """
    if isinstance(identifier, int):
        return identifier
    text = str(identifier)
    if _NUMERIC_ID.fullmatch(text):
        return int(text)
    return None

def canonical_identifier(identifier: Any) -> str:
    pk = numeric_id(identifier)
    return str(pk) if pk is not None else str(identifier)

def unique_slug(text: str, exists: Callable[[str], bool]) -> str:
    """Slugify `text`, suffixing -2, -3... until `exists` no longer claims it."""
    base = slugify(text) or "item"
    # Purely numeric slugs would be read back as primary keys
    if base.isdigit():
        base = f"n-{base}"
    candidate, n = base, 2
    while exists(candidate):
        candidate = f"{base}-{n}"
        n += 1
    return candidate
