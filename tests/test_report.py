"""Tests for plain-text report rendering."""

from src.services.report_service import NO_PROFILES_MESSAGE, format_report

from tests.conftest import LONG_ANSWER, make_assessment


def profile(label, **extra):
    return {**make_assessment(), "person_label": label, "provider": "openai", **extra}


def test_no_profiles():
    assert format_report({"individual_profiles": []}) == NO_PROFILES_MESSAGE


def test_individual_report():
    insights = {
        "individual_profiles": [profile("Person 1 (Female)")],
        "providers_used": ["openai"],
        "analysis_depth": "short",
    }
    report = format_report(insights)

    assert report.startswith("AI-Powered Psychological Profile Report")
    assert "Mode: Individual Analysis" in report
    assert "Subject 1 (Female)" in report
    assert "Calm and curious." in report
    assert f"What drives this person (their core motivation)? {LONG_ANSWER}" in report
    assert "Not assessed" not in report
    assert "multiple providers" not in report


def test_missing_answers_are_marked():
    data = profile("Author")
    del data["detailed_analysis"]["core_psychological_assessment"]["outlook"]
    report = format_report({"individual_profiles": [data], "analysis_depth": "short"}, title="Text Analysis")

    assert report.startswith("Text Analysis")
    assert "Are they more optimistic or pessimistic? Not assessed" in report


def test_group_report():
    data = profile("Person 2")
    data["detailed_analysis"]["speech_analysis"] = {"key_quotes": ["I love this", ""]}
    data["detailed_analysis"]["growth_areas"] = {"strengths": ["Patience"], "development_path": "Delegate more"}
    insights = {
        "individual_profiles": [profile("Person 1 (Male)"), data],
        "group_dynamics": "They balance each other well.",
        "providers_used": ["anthropic", "openai"],
    }
    report = format_report(insights)

    assert "Subjects Detected: 2 Individuals" in report
    assert "Subject 1 (Male)" in report
    assert "Subject 2\n" in report
    assert "Key Quotes: I love this" in report
    assert "• Patience" in report
    assert "Group Dynamics (2-Person Analysis)" in report
    assert "They balance each other well." in report
    assert "Note: multiple providers were used (anthropic, openai)." in report
