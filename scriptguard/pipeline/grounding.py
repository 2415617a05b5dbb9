"""
Grounding extractor - mines verifiable facts from scraped content.
Later stages use the hints to tell grounded copy from generic filler.
"""
import logging
import re
from typing import Iterable, Optional

from ..models.quality import FeatureEvidence, GroundingHints, GroundingSummary
from ..models.scraped import ScrapedData
from ..models.script import ScriptResult
from .text import (
    count_words,
    dedupe_by_key,
    has_whole_phrase,
    normalize_key,
    normalize_whitespace,
    split_sentences,
    title_case,
)


logger = logging.getLogger(__name__)


STOP_WORDS = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "your", "you", "our", "are", "was", "were",
    "will", "have", "has", "had", "into", "over", "under", "across", "about", "their", "them", "they",
    "its", "more", "less", "than", "not", "all", "one", "two", "three", "best", "top", "new", "now",
    "can", "get", "use", "used", "using", "app", "apps", "platform", "product", "solution", "services",
    "service", "build", "built", "help", "helps", "make", "made", "teams", "team", "users", "user",
})

KNOWN_TOOLS = (
    "Slack", "Notion", "HubSpot", "Zapier", "GitHub", "Vercel", "Sentry", "Linear",
    "Shopify", "Stripe", "Klaviyo", "Zendesk", "Plaid", "QuickBooks", "Salesforce",
    "Discord", "Twitch", "YouTube", "TikTok", "Instagram", "Substack",
    "Google Classroom", "Canvas", "Zoom", "Zillow", "Redfin", "DocuSign", "Calendly",
    "Booking.com", "Airbnb", "Expedia", "ShipStation", "UPS", "FedEx", "SAP",
    "Reddit", "Telegram", "Google Drive",
)

# Normalized alias -> canonical tool name
INTEGRATION_ALIASES: dict[str, str] = {
    "gdrive": "Google Drive",
    "googledrive": "Google Drive",
    "gh": "GitHub",
    "github": "GitHub",
    "sfdc": "Salesforce",
    "hubspotcrm": "HubSpot",
    "qbo": "QuickBooks",
    "quickbooksonline": "QuickBooks",
    "yt": "YouTube",
    "twitter": "X",
    "x": "X",
    "ig": "Instagram",
    "booking": "Booking.com",
    "bookingcom": "Booking.com",
    "msteams": "Microsoft Teams",
    "microsoftteams": "Microsoft Teams",
    "riot": "Riot Games",
    "riotgames": "Riot Games",
    "gclassroom": "Google Classroom",
}

_KNOWN_BY_KEY = {normalize_key(tool): tool for tool in KNOWN_TOOLS}

NUMBER_PATTERN = re.compile(r"\$?\d[\d,.]*(?:\.\d+)?%?")
_GENERIC_FEATURE_NAME = re.compile(r"^feature\s*\d*$", re.IGNORECASE)

MAX_TERMS = 30
MAX_PHRASES = 18
MAX_FEATURE_NAMES = 9
MAX_NUMBERS = 20
MAX_INTEGRATIONS = 12


def extract_grounding_hints(scraped: ScrapedData) -> GroundingHints:
    """
    Extract grounding material from a scraped snapshot.

    Args:
        scraped: Site facts

    Returns:
        GroundingHints with terms, phrases, feature-name candidates, numbers and integrations
    """
    text = normalize_whitespace(" ".join([
        scraped.title,
        scraped.description,
        scraped.og_title,
        scraped.og_description,
        *scraped.headings,
        *scraped.features,
        *scraped.structured_hints,
        scraped.body_text,
    ]))

    hints = GroundingHints(
        terms=tuple(_collect_terms(text, scraped.domain_root)),
        phrases=tuple(_collect_phrases(scraped)),
        feature_name_candidates=tuple(_collect_feature_names(scraped)),
        numbers=tuple(_collect_numbers(text)),
        integration_candidates=tuple(_collect_integration_candidates(scraped, text)),
    )
    logger.debug(
        f"Grounding for {scraped.domain or 'unknown'}: {len(hints.terms)} terms, "
        f"{len(hints.phrases)} phrases, {len(hints.numbers)} numbers, "
        f"{len(hints.integration_candidates)} integrations"
    )
    return hints


def has_grounding_signal(text: str, hints: GroundingHints) -> bool:
    """True if text whole-word-contains any extracted phrase, number or term."""
    if not text.strip():
        return False
    return any(
        has_whole_phrase(text, value)
        for value in (*hints.phrases, *hints.numbers, *hints.terms)
    )


def pick_grounded_phrase(hints: GroundingHints, index: int) -> Optional[str]:
    if hints.phrases:
        return hints.phrases[index % len(hints.phrases)]
    if hints.terms:
        return title_case(hints.terms[index % len(hints.terms)])
    return None


def pick_grounded_number(hints: GroundingHints, index: int) -> Optional[str]:
    if not hints.numbers:
        return None
    return hints.numbers[index % len(hints.numbers)]


def pick_grounded_integration(hints: GroundingHints, index: int) -> Optional[str]:
    if not hints.integration_candidates:
        return None
    return hints.integration_candidates[index % len(hints.integration_candidates)]


def canonicalize_integration(name: str) -> Optional[str]:
    """Resolve a tool name or alias to its canonical spelling, or None if unknown."""
    key = normalize_key(name)
    if not key:
        return None
    return INTEGRATION_ALIASES.get(key) or _KNOWN_BY_KEY.get(key)


def canonicalize_integrations(
    items: Iterable[str],
    hints: GroundingHints,
    fallback: Iterable[str] = (),
    limit: int = MAX_INTEGRATIONS,
) -> list[str]:
    """
    Canonicalize, dedupe and pad an integration list.

    Known names and aliases are rewritten to canonical spelling; other names are kept
    whitespace-normalized. Lists shorter than 2 are padded from grounded candidates,
    then from the fallback defaults. The result is capped at `limit`.
    """
    resolved = []
    for item in items:
        cleaned = normalize_whitespace(item)
        if cleaned:
            resolved.append(canonicalize_integration(cleaned) or cleaned)
    out = dedupe_by_key(resolved)

    if len(out) < 2:
        out = dedupe_by_key([*out, *hints.integration_candidates])[:max(2, len(out))]
    if len(out) < 2:
        out = dedupe_by_key([*out, *fallback])[:max(2, len(out))]
    return out[:limit]


def clean_feature_name(value: str, max_words: int = 4) -> str:
    words = re.sub(r"[^A-Za-z0-9\s]", " ", value).split()
    return " ".join(words[:max_words])


def canonicalize_feature_name(name: str, hints: GroundingHints, index: int) -> str:
    """
    Clean a feature name to at most 4 alphanumeric words.
    Matches a grounded candidate when possible; generic names ("Feature 2") are
    replaced by the candidate at index.
    """
    cleaned = clean_feature_name(name)
    candidates = hints.feature_name_candidates
    key = normalize_key(cleaned)
    for candidate in candidates:
        if normalize_key(candidate) == key:
            return candidate
    if not cleaned or _GENERIC_FEATURE_NAME.match(cleaned):
        if candidates:
            return candidates[index % len(candidates)]
        return f"Feature {index + 1}"
    return cleaned


def build_feature_evidence_plan(hints: GroundingHints, count: int = 3) -> list[FeatureEvidence]:
    """
    Pair grounded feature names with supporting phrases and numbers.
    Returns at most `count` entries with distinct names; fewer when the source is thin.
    """
    names = list(hints.feature_name_candidates)
    for i in range(len(hints.phrases)):
        phrase = pick_grounded_phrase(hints, i)
        if phrase:
            names.append(clean_feature_name(phrase))
    names = [name for name in dedupe_by_key(names) if count_words(name) >= 2]

    plan = []
    for index, name in enumerate(names[:count]):
        name_words = {word.lower() for word in name.split() if len(word) >= 4}
        related = [
            phrase for phrase in hints.phrases
            if name_words & {word.lower() for word in re.findall(r"[A-Za-z0-9]+", phrase)}
        ]
        required = related[:2]
        if not required:
            phrase = pick_grounded_phrase(hints, index)
            required = [phrase] if phrase else []
        plan.append(FeatureEvidence(
            feature_name=name,
            required_phrases=required,
            preferred_number=pick_grounded_number(hints, index),
        ))
    return plan


def summarize_grounding_usage(script: ScriptResult, hints: GroundingHints) -> GroundingSummary:
    """Measure how much grounding material the script actually uses."""
    corpus = script.text_corpus().lower()

    matched_terms = [term for term in hints.terms if has_whole_phrase(corpus, term)]
    matched_phrases = [phrase for phrase in hints.phrases if phrase.lower() in corpus]
    matched_numbers = [num for num in hints.numbers if num.lower() in corpus]

    denominator = max(1, len(hints.terms) + len(hints.phrases) + len(hints.numbers))
    matched = len(matched_terms) + len(matched_phrases) + len(matched_numbers)

    return GroundingSummary(
        coverage=round(matched / denominator, 2),
        matched_terms=len(matched_terms),
        total_terms=len(hints.terms),
        matched_phrases=len(matched_phrases),
        total_phrases=len(hints.phrases),
        matched_numbers=len(matched_numbers),
        total_numbers=len(hints.numbers),
        sample_matches=[*matched_phrases, *matched_terms[:5], *matched_numbers[:3]][:8],
    )


def _collect_terms(text: str, domain_root: str) -> list[str]:
    freq: dict[str, int] = {}
    for token in re.sub(r"[^a-z0-9\s-]", " ", text.lower()).split():
        if len(token) < 3 or len(token) > 24:
            continue
        if token.isdigit() or token in STOP_WORDS or token == domain_root:
            continue
        freq[token] = freq.get(token, 0) + 1
    # sorted() is stable, so ties keep first-appearance order
    ranked = sorted(freq.items(), key=lambda item: item[1], reverse=True)
    return [token for token, _ in ranked[:MAX_TERMS]]


def _collect_phrases(scraped: ScrapedData) -> list[str]:
    raw = [
        *scraped.headings,
        *scraped.features,
        *split_sentences(scraped.description),
        *split_sentences(scraped.og_description),
        *scraped.structured_hints,
    ]
    phrases = []
    for line in raw:
        line = normalize_whitespace(line)
        if not 12 <= len(line) <= 72:
            continue
        if not 2 <= count_words(line) <= 9:
            continue
        phrases.append(re.sub(r"[.!?;:]+$", "", line).strip())
    return dedupe_by_key(phrases)[:MAX_PHRASES]


def _collect_feature_names(scraped: ScrapedData) -> list[str]:
    names = []
    for line in [*scraped.features, *scraped.headings]:
        name = clean_feature_name(normalize_whitespace(line))
        if 2 <= count_words(name) <= 4 and not _GENERIC_FEATURE_NAME.match(name):
            names.append(name)
    return dedupe_by_key(names)[:MAX_FEATURE_NAMES]


def _collect_numbers(text: str) -> list[str]:
    matches = [match.rstrip(".,") for match in NUMBER_PATTERN.findall(text)]
    # Symbols and decimal points distinguish values, so compare raw tokens
    return dedupe_by_key((match for match in matches if match), key_func=str.lower)[:MAX_NUMBERS]


def _collect_integration_candidates(scraped: ScrapedData, text: str) -> list[str]:
    from_links = []
    for entry in scraped.links:
        label = normalize_whitespace(entry.split(":")[0])
        if not 2 <= len(label) <= 30:
            continue
        resolved = canonicalize_integration(label)
        if resolved:
            from_links.append(resolved)

    lower = text.lower()
    from_known = [tool for tool in KNOWN_TOOLS if has_whole_phrase(lower, tool.lower())]
    return dedupe_by_key([*from_links, *from_known])[:MAX_INTEGRATIONS]
