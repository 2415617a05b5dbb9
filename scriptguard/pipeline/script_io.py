"""
Script payload I/O - coerce loosely-typed JSON into a ScriptResult and back.
"""
import math
import re
from typing import Any, Optional

from ..models.script import Feature, ScriptResult


_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _get(raw: dict, key: str) -> Any:
    """Read a camelCase key, falling back to its snake_case spelling."""
    if key in raw:
        return raw[key]
    return raw.get(_snake(key))


def _to_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return default


def _to_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in (_to_str(v) for v in value) if item]


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _normalize_feature(value: Any) -> Feature:
    raw = value if isinstance(value, dict) else {}
    return Feature(
        icon=_to_str(_get(raw, "icon")) or "generic",
        app_name=_to_str(_get(raw, "appName")) or "Feature",
        caption=_to_str(_get(raw, "caption")) or "Product update",
        demo_lines=_to_str_list(_get(raw, "demoLines")),
    )


def _infer_narration(raw: dict) -> list[str]:
    segments = _to_str_list(_get(raw, "narrationSegments"))
    if segments:
        return segments
    narration = _to_str(_get(raw, "narration"))
    if not narration:
        return []
    return [part.strip() for part in _SENTENCE_SPLIT.split(narration) if part.strip()] or [narration]


def _positive_ints(value: Any, minimum: int, keep_zero_or_less: bool) -> Optional[list[int]]:
    if not isinstance(value, list):
        return None
    numbers = [_to_number(item) for item in value]
    out = []
    for number in numbers:
        if number is None:
            continue
        if not keep_zero_or_less and number <= 0:
            continue
        out.append(max(minimum, round(number)))
    return out or None


def normalize_script_payload(payload: Any) -> ScriptResult:
    """
    Coerce a script-like JSON object into a ScriptResult.

    Accepts camelCase (persisted) or snake_case keys. Strings are trimmed, non-string
    list items are stringified, and narration falls back to sentence-splitting a single
    `narration` string. Feature and segment counts are kept as given so the quality
    gate can see structural defects.

    Raises:
        ValueError: if the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise ValueError("script payload must be a JSON object")

    features = _get(payload, "features")
    script = ScriptResult(
        brand_name=_to_str(_get(payload, "brandName")) or "Brand",
        brand_url=_to_str(_get(payload, "brandUrl")),
        brand_color=_to_str(_get(payload, "brandColor")) or "#111111",
        accent_color=_to_str(_get(payload, "accentColor")) or "#2563EB",
        tagline=_to_str(_get(payload, "tagline")),
        hook_line1=_to_str(_get(payload, "hookLine1"), "Built for teams"),
        hook_line2=_to_str(_get(payload, "hookLine2"), "shipping products"),
        hook_keyword=_to_str(_get(payload, "hookKeyword"), "faster"),
        features=[_normalize_feature(item) for item in features] if isinstance(features, list) else [],
        integrations=_to_str_list(_get(payload, "integrations")),
        cta_url=_to_str(_get(payload, "ctaUrl")),
        narration_segments=_infer_narration(payload),
        domain_pack_id=_to_str(_get(payload, "domainPackId")) or None,
        scene_weights=_positive_ints(_get(payload, "sceneWeights"), 1, keep_zero_or_less=True),
        segment_durations_ms=_positive_ints(_get(payload, "segmentDurationsMs"), 1, keep_zero_or_less=False),
        audio_src=_to_str(_get(payload, "audioSrc")) or None,
    )

    duration = _to_number(_get(payload, "audioDurationMs"))
    if duration is not None and duration > 0:
        script.audio_duration_ms = round(duration)
    return script


def to_persisted_script(script: ScriptResult) -> dict:
    """camelCase JSON object the renderer reads, with the joined narration included."""
    data = script.model_dump(by_alias=True, mode="json", exclude_none=True)
    data["narration"] = script.narration
    return data
