from __future__ import annotations

from app.pipeline.stages import ExtractorResult, OracleResult
from app.pipeline.profile_source import Provenance, ProfileInput

EXTRACTOR_TEMPERATURE = 0.0
ORACLE_TEMPERATURE = 0.0
JUDGE_TEMPERATURE = 0.0
MENTOR_TEMPERATURE = 0.2

EXTRACTOR_SYSTEM_PROMPT = (
    "You are a strict, highly analytical HR Extractor. Read the raw resume or profile text and call out "
    "the specific tool stacks, complex system architectures and systemic impact it demonstrates. "
    "Do NOT sugarcoat generic experience. "
    'Return strict JSON: {"structured_profile": "detailed comprehensive summary", "vigor_score": number(1-100)}'
)

ORACLE_SYSTEM_PROMPT = (
    "You are a hyper-analytical AI Capability Oracle. Compare the current state of the art in AI against "
    "the user's specific sub-domain, rigorously and objectively. Keep the insights extremely concise and "
    "high-impact (under two minutes of reading) using punchy bullet points. Name exactly which of their "
    "tasks are most exposed to current LLMs and agentic automation. "
    'Return strict JSON: {"research_insights": "concise, bulleted, objective analysis of AI\'s threat", '
    '"immunity_score": number(1-100)}'
)

JUDGE_SYSTEM_PROMPT = (
    "You are the Architect Level Judge and evaluate the user with extreme technical rigor against standard "
    "1-100 metrics. Grade stringently for generic or easily automated skills; reward deep, complex "
    "architectural experience and cross-disciplinary mastery. "
    'Return strict JSON: {"domain_depth": number, "knowledge_width": number, "domain_variance": number, '
    '"experience_context": number}'
)

MENTOR_SYSTEM_PROMPT = (
    "You are a futuristic, elite Cyber-Mentor. Based on the AI vulnerability analysis, give a concrete, "
    "step-by-step roadmap to reach 'System Architect' depth in the user's exact domain.\n"
    "Keep the roadmap extremely concise, punchy and fast to read: rapid-fire, high-impact advice.\n"
    "You MUST provide exactly 3 detailed yet concisely worded 'Level-Up Quests'. A quest is never "
    "'learn python': each one must involve mastering a specific modern architecture, an advanced "
    "integration or a deep foundational methodology that AI cannot easily replicate (e.g. distributed "
    "systems consensus, hardware/software co-design).\n"
    'Return JSON: {"cyber_roadmap": ["short crisp paragraph 1", "short crisp paragraph 2"], '
    '"level_up_quests": ["concise, complex task 1", "concise, complex task 2", "concise, complex task 3"]}'
)

SCRAPED_PROFILE_PREFIX = "Here is the raw scraped text from the user's LinkedIn profile: "


def extractor_user_prompt(profile: ProfileInput) -> str:
    text = profile.text
    if profile.provenance is Provenance.UNTRUSTED_SCRAPED:
        text = SCRAPED_PROFILE_PREFIX + text
    return f"Analyze this profile carefully: {text}"


def oracle_user_prompt(extractor: ExtractorResult) -> str:
    return f"User Profile: {extractor.structured_profile}"


def judge_user_prompt(extractor: ExtractorResult, oracle: OracleResult) -> str:
    return f"Profile: {extractor.structured_profile}\nAI Research: {oracle.research_insights}"


def mentor_user_prompt(extractor: ExtractorResult, oracle: OracleResult, final_score: float) -> str:
    return (
        f"The user achieved an AI Replacement Probability Score of {final_score:g}/10 "
        "(where 10 is critically vulnerable to automation, and 0 is completely indispensable). "
        f"Their AI Immunity is {oracle.immunity_score}/100. "
        f"Profile context: {extractor.structured_profile}. "
        'Draft their concise cyber-roadmap and 3 actionable "level-up quests".'
    )
