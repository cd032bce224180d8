"""Central configuration for the instructions sent to the model at each stage."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

_CHAPTER_JSON_SCHEMA = (
    "JSON schema:\n"
    "{\n"
    '  "title": string,\n'
    '  "prose": string,\n'
    '  "continuity": {\n'
    '    "chapterSummary": string,\n'
    '    "charactersState": { [name:string]: string },\n'
    '    "locationsState": { [name:string]: string },\n'
    '    "timelineEvents": string[],\n'
    '    "openLoops": string[],\n'
    '    "styleNotes": string\n'
    "  }\n"
    "}"
)

SYSTEM_PROMPTS = {
    "brief_bible": (
        "You are a senior book architect and continuity designer.\n"
        "Return ONLY valid JSON.\n\n"
        "JSON schema:\n"
        "{\n"
        '  "brief": {\n'
        '    "titleSuggestion": string,\n'
        '    "oneSentenceHook": string,\n'
        '    "coreConcept": string,\n'
        '    "genreLabel": string,\n'
        '    "targetAudienceLabel": string,\n'
        '    "positioning": string,\n'
        '    "themes": string[],\n'
        '    "comparisons": string[]\n'
        "  },\n"
        '  "bible": {\n'
        '    "characters": [\n'
        "      {\n"
        '        "name": string,\n'
        '        "role": string,\n'
        '        "traits": string[],\n'
        '        "wants": string,\n'
        '        "fears": string,\n'
        '        "voiceNotes": string,\n'
        '        "appearance": string\n'
        "      }\n"
        "    ],\n"
        '    "locations": [\n'
        '      { "name": string, "type": string, "sensoryNotes": string, "rules": string }\n'
        "    ],\n"
        '    "worldRules": string[],\n'
        '    "timelineSeed": string[]\n'
        "  }\n"
        "}"
    ),
    "outline": (
        "You are a master narrative planner.\n"
        "Return ONLY valid JSON.\n\n"
        "JSON schema:\n"
        "{\n"
        '  "outline": {\n'
        '    "overallArc": string,\n'
        '    "acts": [ { "actIndex": number, "label": string, "goal": string } ],\n'
        '    "chapterSummaries": [\n'
        "      {\n"
        '        "index": number,\n'
        '        "title": string,\n'
        '        "summary": string,\n'
        '        "povCharacter": string,\n'
        '        "setting": string,\n'
        '        "conflict": string,\n'
        '        "resolutionBeat": string\n'
        "      }\n"
        "    ]\n"
        "  },\n"
        '  "chapterContracts": [\n'
        "    {\n"
        '      "index": number,\n'
        '      "title": string,\n'
        '      "mustInclude": string[],\n'
        '      "mustAvoid": string[],\n'
        '      "continuityFocus": string[],\n'
        '      "endingHookIntent": string\n'
        "    }\n"
        "  ]\n"
        "}\n"
        "Chapter indices start at 0 and are consecutive."
    ),
    "chapter": (
        "You are a top-tier novelist and continuity-obsessed editor.\n"
        "Write the chapter prose AND then return a JSON object with prose + continuity.\n\n"
        "Return ONLY valid JSON.\n\n" + _CHAPTER_JSON_SCHEMA
    ),
    "chapter_regenerate": (
        "You are a top-tier novelist and continuity-obsessed editor.\n"
        "Rewrite the chapter prose AND return JSON with prose + continuity.\n\n"
        "Return ONLY valid JSON.\n\n" + _CHAPTER_JSON_SCHEMA
    ),
}

CHAPTER_TASK = (
    "Task:\n"
    "Write strong, publishable prose for this chapter.\n"
    "- Use the outline and contract as constraints, not as text to repeat.\n"
    "- Keep character appearance/traits consistent with the ledger and bible.\n"
    "- Respect location names and world rules.\n"
    "- End with a purposeful hook aligned to the contract."
)

REGENERATE_TASK = (
    "Task:\n"
    "Regenerate the chapter to be stronger and cleaner, preserving key beats from the existing user text.\n"
    "- Use the outline and contract as constraints, not as text to repeat.\n"
    "- Keep established character and location facts from the continuity context.\n"
    "- End with a purposeful hook aligned to the contract."
)


def _clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def build_style_card(inputs: Optional[Mapping[str, Any]] = None) -> str:
    """Render the project's style parameters as a compact card."""

    inputs = inputs or {}
    total_chapters = _clamp(_as_int(inputs.get("totalChapters"), 12), 1, 200)
    target = _clamp(_as_int(inputs.get("chapterTargetWords"), 2000), 300, 12000)
    min_words = _clamp(_as_int(inputs.get("chapterMinWords"), 1500), 200, 12000)
    max_words = _clamp(_as_int(inputs.get("chapterMaxWords"), 3000), min_words, 20000)

    lines = [
        "STYLE CARD",
        f"Genre: {inputs.get('genre') or 'General Fiction'}",
        f"Sub-style: {inputs.get('subStyle') or '-'}",
        f"Tone: {inputs.get('tone') or 'Balanced'}",
        f"Voice/POV: {inputs.get('voice') or '3rd Person Limited'}",
        f"Humour level: {inputs.get('humourLevel') or 'Medium'}",
        f"Target audience: {inputs.get('targetAudience') or 'General Fiction'} ({inputs.get('ageRange') or '18+'})",
        f"Planned chapters: {total_chapters}",
        f"Chapter word target: {target} (range {min_words}-{max_words})",
        f"Title (if provided): {inputs.get('title') or '-'}",
        f"Core concept (if provided): {inputs.get('coreConcept') or '-'}",
        "",
        "Writing priorities:",
        "- Clear plot causality and character-driven stakes.",
        "- Consistent internal logic.",
        "- Finished prose over placeholder text.",
        "- Minimal recap unless structurally necessary.",
    ]
    return "\n".join(lines)


def build_user_canon(inputs: Optional[Mapping[str, Any]] = None) -> str:
    """Render the user's authoritative characters, locations and notes."""

    inputs = inputs or {}
    characters = (inputs.get("characters") or "").strip()
    locations = (inputs.get("locations") or "").strip()
    notes = (inputs.get("additionalNotes") or "").strip()

    lines = [
        "USER CANON (authoritative user-provided facts)",
        "Characters (free text):",
        characters or "None provided. Invent suitable characters that match the genre and core concept.",
        "",
        "Locations (free text):",
        locations or "None provided. Invent suitable locations that match the genre and core concept.",
        "",
        "Additional notes:",
        notes or "None.",
    ]
    return "\n".join(lines)


def format_section(heading: str, payload: Any) -> str:
    """Render ``payload`` under ``heading`` as indented JSON."""

    return f"{heading}:\n{json.dumps(payload, indent=2, ensure_ascii=False)}"


__all__ = [
    "CHAPTER_TASK",
    "REGENERATE_TASK",
    "SYSTEM_PROMPTS",
    "build_style_card",
    "build_user_canon",
    "format_section",
]
