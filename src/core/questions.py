"""
Assessment questions per analysis depth

Each question is paired with the answer key the model must fill in under
detailed_analysis.core_psychological_assessment.
"""
from enum import Enum
from typing import List, Tuple


class AnalysisDepth(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


SHORT_QUESTIONS: List[Tuple[str, str]] = [
    ("core_motivation", "What drives this person (their core motivation)?"),
    ("confidence_level", "How confident are they really?"),
    ("self_acceptance", "Do they genuinely like themselves?"),
    ("intelligence_level", "How smart are they?"),
    ("creativity_assessment", "How creative are they?"),
    ("stress_handling", "How do they handle stress or setbacks?"),
    ("trustworthiness", "Are they trustworthy?"),
    ("authenticity", "Do they exaggerate or fake things about themselves?"),
    ("ambition_level", "How ambitious are they?"),
    ("insecurities", "What are they insecure about?"),
    ("social_validation", "How much do they care what others think?"),
    ("independence", "Are they independent-minded, or do they follow the crowd?"),
    ("communication_style", "Do they tend to dominate conversations or listen more?"),
    ("criticism_response", "How do they deal with criticism?"),
    ("outlook", "Are they more optimistic or pessimistic?"),
    ("humor_sense", "Do they have a strong sense of humor?"),
    ("treatment_of_others", 'How do they treat people "beneath" them?'),
    ("consistency", "Are they consistent, or do they contradict themselves?"),
    ("hidden_strengths", "What hidden strengths do they have?"),
    ("hidden_weaknesses", "What hidden weaknesses do they have?"),
]

MEDIUM_QUESTIONS: List[Tuple[str, str]] = SHORT_QUESTIONS + [
    ("deepest_craving", "What do they crave most: attention, respect, control, affection, or freedom?"),
    ("superiority_inferiority", "Do they secretly feel superior or inferior to others?"),
    ("emotional_stability", "How emotionally stable are they?"),
    ("accountability", "Do they take responsibility for mistakes or deflect blame?"),
    ("competitiveness", "How competitive are they?"),
    ("grudge_holding", "Do they hold grudges or let things go?"),
    ("private_vs_public", "Are they more genuine in private or in public?"),
    ("self_awareness", "How self-aware do they seem?"),
    ("success_framing", "Do they tend to exaggerate their successes or downplay them?"),
    ("logic_vs_emotion", "Are they more driven by logic or by emotion?"),
    ("routine_vs_novelty", "Do they thrive on routine or novelty?"),
    ("starting_vs_finishing", "Are they better at starting things or finishing them?"),
    ("social_energy", "Do they inspire others, drain others, or blend into the background?"),
    ("risk_attitude", "Are they risk-takers or risk-avoiders?"),
    ("influence_style", "Do they tend to manipulate people, charm them, or stay straightforward?"),
    ("self_image_accuracy", "How consistent is their image of themselves compared to reality?"),
    ("leadership_preference", "Do they prefer to lead, to follow, or to go it alone?"),
    ("generosity", "Are they generous with others, or more self-serving?"),
    ("relationship_depth", "Do they seek depth in relationships, or keep things shallow?"),
    ("hidden_from_others", "What do they most want to hide from others?"),
]

LONG_QUESTIONS: List[Tuple[str, str]] = MEDIUM_QUESTIONS + [
    ("adaptability", "Do they adapt quickly, or resist change?"),
    ("life_story_exaggeration", "How much do they exaggerate their life story?"),
    ("time_orientation", "Are they more focused on short-term pleasure or long-term goals?"),
    ("feels_underappreciated", "Do they secretly feel underappreciated?"),
    ("control_need", "How much control do they need in relationships?"),
    ("hidden_anger", "Do they have hidden anger or resentment?"),
    ("advice_giving_vs_taking", "Are they better at giving advice or taking it?"),
    ("authentic_vs_performative", "Do they come across as more authentic or performative?"),
    ("curiosity", "How curious are they about the world and other people?"),
    ("principles", "Do they stick to their principles, or bend them when convenient?"),
    ("reading_others", "How good are they at reading others?"),
    ("persona_consistency", "Do they act the same across different social groups, or change their persona?"),
    ("excitement_seeking", "Do they seek excitement or avoid it?"),
    ("attention_preference", "Do they like being the center of attention, or prefer staying in the background?"),
    ("disclosure_balance", "Do they overshare, undershare, or strike a balance?"),
    ("forgiveness", "Are they more forgiving or judgmental?"),
    ("humor_function", "Do they use humor as connection, or as defense?"),
    ("decisiveness", "Are they decisive, or do they hesitate a lot?"),
    ("validation_need", "Do they need constant validation, or are they self-sustaining?"),
    ("image_gap", "What's the gap between how they want to be seen and how they actually appear?"),
]

_BY_DEPTH = {
    AnalysisDepth.SHORT: SHORT_QUESTIONS,
    AnalysisDepth.MEDIUM: MEDIUM_QUESTIONS,
    AnalysisDepth.LONG: LONG_QUESTIONS,
}


def resolve_depth(depth) -> AnalysisDepth:
    """Unknown or missing depth falls back to short"""
    try:
        return AnalysisDepth(depth)
    except ValueError:
        return AnalysisDepth.SHORT


def questions_for(depth) -> List[Tuple[str, str]]:
    return list(_BY_DEPTH[resolve_depth(depth)])


def required_fields(depth) -> List[str]:
    return [key for key, _ in questions_for(depth)]
