"""Map classifier language codes to PostgreSQL text search configurations."""
from typing import Optional

DEFAULT_SEARCH_LANGUAGE = "simple"

# ISO 639-1 code -> built-in PostgreSQL text search configuration
SEARCH_LANGUAGES = {
    "ar": "arabic",
    "ca": "catalan",
    "da": "danish",
    "de": "german",
    "el": "greek",
    "en": "english",
    "es": "spanish",
    "eu": "basque",
    "fi": "finnish",
    "fr": "french",
    "ga": "irish",
    "hi": "hindi",
    "hu": "hungarian",
    "hy": "armenian",
    "id": "indonesian",
    "it": "italian",
    "lt": "lithuanian",
    "ne": "nepali",
    "nl": "dutch",
    "no": "norwegian",
    "nb": "norwegian",
    "nn": "norwegian",
    "pt": "portuguese",
    "ro": "romanian",
    "ru": "russian",
    "sr": "serbian",
    "sv": "swedish",
    "ta": "tamil",
    "tr": "turkish",
    "yi": "yiddish",
}


def map_language(code: Optional[str]) -> str:
    """Return the search configuration for a language code, or the default.

    Accepts plain codes ("sv") and region-tagged ones ("sv-SE", "pt_BR").
    """
    if not code:
        return DEFAULT_SEARCH_LANGUAGE
    base = code.strip().lower().replace("_", "-").split("-")[0]
    return SEARCH_LANGUAGES.get(base, DEFAULT_SEARCH_LANGUAGE)
