"""
Prompt builders for assessment synthesis, group dynamics and chat
"""
from typing import List, Sequence, Tuple

PLAIN_TEXT_RULE = (
    "Do not use any markdown formatting. No hashtags, asterisks, underscores "
    "or backticks inside string values. Plain text only."
)

ASSESSMENT_SHAPE = """Return a single JSON object with this structure:
{{
  "summary": "Brief overview of {subject}",
  "detailed_analysis": {{
    "core_psychological_assessment": {{
{answer_keys}
    }},
    "personality_core": "Core personality traits with supporting evidence",
    "thought_patterns": "Cognitive processes and decision-making style",
    "emotional_intelligence": "Emotional awareness and social intelligence",
    "speech_analysis": {{
      "key_quotes": ["Direct quotes that reveal personality, when speech or text is available"],
      "vocabulary_analysis": "Word choice and sophistication",
      "personality_revealed": "What the content reveals about character and values"
    }},
    "visual_evidence": {{
      "facial_analysis": "Facial expressions and what they suggest",
      "body_language": "Posture and gestures",
      "appearance_details": "Clothing, setting and visible details"
    }},
    "professional_insights": "Career inclinations and work style",
    "relationships": {{
      "current_status": "Likely relationship status",
      "parental_status": "Parenting style or potential",
      "ideal_partner": "Compatible partner characteristics"
    }},
    "growth_areas": {{
      "strengths": ["Key strengths with evidence"],
      "challenges": ["Areas for improvement"],
      "development_path": "Suggested growth direction"
    }}
  }}
}}"""


def _numbered(questions: Sequence[Tuple[str, str]]) -> str:
    return "\n".join(f"{i}. {question}" for i, (_, question) in enumerate(questions, 1))


def _answer_keys(questions: Sequence[Tuple[str, str]]) -> str:
    return ",\n".join(f'      "{key}": "Answer to: {question}"' for key, question in questions)


def _shape(subject: str, questions: Sequence[Tuple[str, str]]) -> str:
    return ASSESSMENT_SHAPE.format(subject=subject, answer_keys=_answer_keys(questions))


def media_assessment_prompt(
    subject: str,
    questions: Sequence[Tuple[str, str]],
    has_video: bool = False,
    has_audio: bool = False
) -> str:
    """System prompt for one subject seen in an image or video"""
    sources = ["face analysis from several detection services"]
    if has_video:
        sources.append("video scene, emotion and topic insights")
    if has_audio:
        sources.append("an audio transcription with speech metrics")

    return f"""You are an expert psychologist and personality analyst.
Conduct a thorough, evidence-based psychological assessment of {subject}.
The user message is a JSON evidence payload containing {", ".join(sources)}.

When a transcription is present, treat it as the primary source and quote it.
Support every conclusion with specific evidence from the payload.

{PLAIN_TEXT_RULE}

Answer ALL of these {len(questions)} questions. "Not assessed" is not an
acceptable answer; make reasonable inferences from the available evidence,
writing at least two full sentences per answer:
{_numbered(questions)}

{_shape(subject, questions)}"""


def text_assessment_prompt(questions: Sequence[Tuple[str, str]], source: str = "text") -> str:
    """System prompt for an author known only through their writing"""
    return f"""You are an expert in personality analysis and psychological assessment.
The user message is a {source} written by one person. Analyze the author.

Analyze writing style, tone, word choice and content themes. Include 8-12
direct quotations as supporting evidence.

{PLAIN_TEXT_RULE}

Answer ALL of these {len(questions)} questions about the author, writing at
least two full sentences per answer:
{_numbered(questions)}

{_shape("the author", questions)}"""


def escalated_prompt(base_prompt: str, missing_fields: List[str]) -> str:
    """Stricter retry prompt naming the answers the previous attempt left out"""
    listed = "\n".join(f"- {name}" for name in missing_fields)
    return f"""{base_prompt}

IMPORTANT: A previous attempt omitted or left too short the following required
answers under detailed_analysis.core_psychological_assessment:
{listed}
Every one of them MUST be present as a full, evidence-based answer.
Return only the JSON object."""


def group_dynamics_prompt(people_count: int) -> str:
    return f"""You are analyzing the group dynamics of {people_count} people detected in the same media.
Based on the individual summaries provided, describe in one short paragraph
(3-5 sentences) how these personalities might interact: compatibilities,
likely conflicts, and how they might complement each other.
{PLAIN_TEXT_RULE}"""


def chat_system_prompt(analysis_context: str = "") -> str:
    base = "You are an AI assistant specialized in personality analysis."
    if not analysis_context:
        return f"{base} Be helpful, informative, and engaging. {PLAIN_TEXT_RULE}"
    return f"""{base}

{PLAIN_TEXT_RULE}

This conversation is about a personality analysis. Here is its context:
{analysis_context}

Provide detailed psychological insights grounded in the analysis."""
