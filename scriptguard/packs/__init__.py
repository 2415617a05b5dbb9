"""Domain pack definitions."""

from .registry import (
    DOMAIN_PACK_IDS,
    DOMAIN_PACKS,
    FEATURE_ICONS,
    GENERAL_PACK_ID,
    get_domain_pack,
    keyword_weight,
)

__all__ = [
    "DOMAIN_PACK_IDS",
    "DOMAIN_PACKS",
    "FEATURE_ICONS",
    "GENERAL_PACK_ID",
    "get_domain_pack",
    "keyword_weight",
]
