import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from utilities.constants import FALLBACK_QUESTIONS, MIN_QUESTIONS, MAX_QUESTIONS
from utilities.llm import call_gemini_api
from utilities.resume import ResumeProfile

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert interviewer generating behavioral and technical questions for job interviews. "
    "Generate questions that are realistic, role-specific, and vary in difficulty from introductory to advanced."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class GeneratedQuestions:
    texts: List[str]
    source: str  # 'ai' or 'fallback'


def question_count(total_duration, time_per_question):
    """Number of questions for an interview: the rounded ratio clamped to [5, 7]."""
    if not time_per_question or time_per_question <= 0:
        return MIN_QUESTIONS
    # round half up, like a stopwatch would
    calculated = int(total_duration / time_per_question + 0.5)
    return min(max(calculated, MIN_QUESTIONS), MAX_QUESTIONS)


def fallback_questions(role, count, profile: Optional[ResumeProfile] = None):
    bank = list(FALLBACK_QUESTIONS.get(role) or FALLBACK_QUESTIONS['default'])
    if profile is not None and (profile.skills or profile.experience):
        expertise = profile.primary_skill or 'your expertise'
        bank[0] = f"Tell me about yourself and your experience, particularly with {expertise}."
    return bank[:min(count, len(bank))]


def build_prompt(role, count, profile: Optional[ResumeProfile] = None):
    prompt = f"{SYSTEM_PROMPT}\n\n"
    prompt += f"Target role: {role}\n"
    prompt += f"Number of questions to generate: {count}\n\n"

    if profile is not None and not profile.is_empty:
        prompt += "Candidate background:\n"
        if profile.skills:
            prompt += f"Skills: {', '.join(profile.skills)}\n"
        experience = profile.experience_text()
        if experience:
            prompt += f"Experience: {experience}\n"
        if profile.summary:
            prompt += f"Summary: {profile.summary}\n"
        prompt += "\n"

    prompt += (
        'Return a JSON array of objects with "questionText" and "questionNumber" fields. '
        'Questions should be specific to the role and progressively increase in complexity. '
        'Format your response as: {"questions": [{"questionText": "...", "questionNumber": 1}, ...]}'
    )
    return prompt


def parse_questions(raw: str) -> List[str]:
    """Parse the model reply into question texts.

    Raises ValueError when the reply is not a non-empty list of objects that
    each carry a non-empty string `questionText`.
    """
    text = _FENCE_RE.sub('', raw.strip())
    payload = json.loads(text)
    items = payload.get('questions') if isinstance(payload, dict) else payload
    if not isinstance(items, list) or not items:
        raise ValueError('Invalid questions array in response')

    texts = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError('Invalid question structure')
        question_text = item.get('questionText')
        if not isinstance(question_text, str) or not question_text.strip():
            raise ValueError('Invalid question structure')
        texts.append(question_text.strip())
    return texts


def generate_questions(role, total_duration, time_per_question, profile: Optional[ResumeProfile] = None,
                       api_key=None, model='gemini-1.5-flash', retries=1, timeout=30) -> GeneratedQuestions:
    """Produce the ordered question texts for an interview.

    Provider problems never escape: a missing key, a failed call or a reply
    that does not parse all downgrade to the static fallback bank.
    """
    count = question_count(total_duration, time_per_question)
    fallback = fallback_questions(role, count, profile)

    if not api_key:
        logger.info("No GEMINI_API_KEY configured, using fallback questions for %s", role)
        return GeneratedQuestions(texts=fallback, source='fallback')

    raw = call_gemini_api(
        build_prompt(role, count, profile),
        api_key=api_key,
        model=model,
        retries=retries,
        timeout=timeout,
        json_mode=True,
    )
    if raw.startswith("Error:"):
        logger.warning("Question generation failed, using fallback: %s", raw[:200])
        return GeneratedQuestions(texts=fallback, source='fallback')

    try:
        texts = parse_questions(raw)
    except (ValueError, AttributeError) as e:
        logger.warning("Could not parse generated questions, using fallback: %s", e)
        return GeneratedQuestions(texts=fallback, source='fallback')

    texts = texts[:count]
    if len(texts) < count:
        # Pad short replies from the bank, skipping anything already asked
        seen = {t.lower() for t in texts}
        for candidate in FALLBACK_QUESTIONS.get(role) or FALLBACK_QUESTIONS['default']:
            if len(texts) >= count:
                break
            if candidate.lower() not in seen:
                texts.append(candidate)
                seen.add(candidate.lower())
    return GeneratedQuestions(texts=texts, source='ai')
