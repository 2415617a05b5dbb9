"""
Text helpers shared by the pipeline stages.
Word counting, whole-phrase matching and normalization keys.
"""
import re
from urllib.parse import urlparse


def count_words(value: str) -> int:
    return len(value.split())


def normalize_whitespace(value: str) -> str:
    return " ".join(value.split())


def normalize_key(value: str) -> str:
    """Lowercase alphanumeric form used for dedupe and name comparison."""
    return re.sub(r"[^a-z0-9]+", "", value.lower())


def phrase_pattern(phrase: str) -> re.Pattern:
    """Case-insensitive whole-word pattern; inner whitespace matches any run of spaces."""
    parts = [re.escape(part) for part in phrase.lower().split()]
    return re.compile(r"(^|\W)" + r"\s+".join(parts) + r"(?=\W|$)", re.IGNORECASE)


def has_whole_phrase(haystack: str, phrase: str) -> bool:
    if not phrase.strip():
        return False
    return phrase_pattern(phrase).search(haystack) is not None


def dedupe_by_key(values, key_func=None) -> list[str]:
    """Keep first occurrence per key (normalization key by default), dropping empty keys."""
    key_func = key_func or normalize_key
    out = []
    seen = set()
    for value in values:
        key = key_func(value)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


def to_max_words(value: str, max_words: int) -> str:
    return " ".join(value.split()[:max_words])


def title_case(value: str) -> str:
    return " ".join(chunk[:1].upper() + chunk[1:] for chunk in value.split())


def split_sentences(value: str) -> list[str]:
    return [part.strip() for part in re.split(r"[.!?]", value) if part.strip()]


def normalize_domain(value: str) -> str:
    """Bare host (no scheme, no www, no path), lowercased."""
    raw = value.strip().lower()
    if not raw:
        return ""
    if "://" not in raw:
        raw = f"https://{raw}"
    host = urlparse(raw).hostname or ""
    return host[4:] if host.startswith("www.") else host


def slugify(value: str) -> str:
    return re.sub(r"-+", "-", re.sub(r"[^a-z0-9]+", "-", value.lower())).strip("-")
