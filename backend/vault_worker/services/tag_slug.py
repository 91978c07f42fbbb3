"""Slugs used as the stable identity of tags."""
import re
import unicodedata

MAX_SLUG_LENGTH = 255
MAX_TAG_NAME_LENGTH = 255


def slugify(text: str) -> str:
    """Convert a tag name to a URL-friendly slug.

    Case, accents, punctuation and repeated separators are normalized away,
    so "Office Supplies", "office-supplies" and "Office  supplies!" share
    one slug. Letters outside Latin scripts are kept as they are. Returns
    an empty string when nothing usable remains.
    """
    text = unicodedata.normalize("NFKD", text or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s_]+", "-", text)
    return text.strip("-")[:MAX_SLUG_LENGTH]
