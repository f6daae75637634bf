"""
Plain-text rendering of a finished personality profile

The rendered report is stored as the first assistant message of a session
and served by the download endpoint.
"""
import re
from typing import Any, Dict, List, Optional

from src.core.questions import questions_for

RULE = "─" * 40
WIDE_RULE = "─" * 65

NO_PROFILES_MESSAGE = (
    "No personality profiles could be generated. "
    "Please try again with a different image or video."
)

_LABEL_DETAIL = re.compile(r"\((Male|Female)\)")


def _label(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _subject_heading(index: int, profile: Dict[str, Any]) -> str:
    match = _LABEL_DETAIL.search(profile.get("person_label") or "")
    heading = f"Subject {index + 1}"
    return f"{heading} ({match.group(1)})" if match else heading


def _core_assessment(detailed: Dict[str, Any], depth: str) -> List[str]:
    answers = detailed.get("core_psychological_assessment") or {}
    lines = ["Core Psychological Assessment:", ""]
    for key, question in questions_for(depth):
        lines.append(f"{question} {answers.get(key) or 'Not assessed'}")
        lines.append("")
    return lines


def _speech(detailed: Dict[str, Any]) -> List[str]:
    speech = detailed.get("speech_analysis") or {}
    lines: List[str] = []
    quotes = [q for q in speech.get("key_quotes") or [] if isinstance(q, str) and q.strip()]
    if quotes:
        lines += [f"Key Quotes: {' | '.join(quotes)}", ""]
    for key in ("vocabulary_analysis", "personality_revealed"):
        if speech.get(key):
            lines += [f"{_label(key)}: {speech[key]}", ""]
    return ["Speech Analysis & Quotes:"] + lines if lines else []


def _growth(detailed: Dict[str, Any]) -> List[str]:
    growth = detailed.get("growth_areas") or {}
    lines: List[str] = []
    for key in ("strengths", "challenges"):
        items = growth.get(key)
        if isinstance(items, list) and items:
            lines.append(f"{_label(key)}:")
            lines += [f"• {item}" for item in items]
            lines.append("")
    if growth.get("development_path"):
        lines += ["Development Path:", str(growth["development_path"]), ""]
    return ["Growth Areas:"] + lines if lines else []


def _profile(index: int, profile: Dict[str, Any], depth: str) -> List[str]:
    detailed = profile.get("detailed_analysis") or {}
    lines = [_subject_heading(index, profile), RULE, ""]
    lines += ["Summary:", profile.get("summary") or "No summary available", ""]
    lines += _core_assessment(detailed, depth)
    lines += _speech(detailed)
    if detailed.get("professional_insights"):
        lines += ["Professional Insights:", str(detailed["professional_insights"]), ""]
    lines += _growth(detailed)
    return lines


def format_report(insights: Dict[str, Any], title: Optional[str] = None) -> str:
    """
    Render a profile as plain text

    Args:
        insights: Persisted personality_insights of an analysis
        title: Optional heading override

    Returns:
        Report text; a fixed notice when no profile exists
    """
    profiles = insights.get("individual_profiles") or []
    if not profiles:
        return NO_PROFILES_MESSAGE

    depth = insights.get("analysis_depth") or "short"
    count = len(profiles)
    lines = [title or "AI-Powered Psychological Profile Report"]
    if count > 1:
        lines += [f"Subjects Detected: {count} Individuals", "Mode: Group Analysis", ""]
    else:
        lines += ["Subject Detected: 1 Individual", "Mode: Individual Analysis", ""]

    for index, profile in enumerate(profiles):
        lines += _profile(index, profile, depth)

    if insights.get("group_dynamics"):
        lines += [WIDE_RULE, f"Group Dynamics ({count}-Person Analysis)", WIDE_RULE, "",
                  str(insights["group_dynamics"]), ""]

    providers = insights.get("providers_used") or []
    if len(providers) > 1:
        lines.append(f"Note: multiple providers were used ({', '.join(providers)}).")

    return "\n".join(lines).rstrip() + "\n"
