import logging
from typing import Optional

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from utilities.resume import ResumeProfile

logger = logging.getLogger(__name__)

SCORING_METHOD = 'heuristic-v1'

# Answer length (words) that reads as a complete spoken answer
IDEAL_MIN_WORDS = 40
IDEAL_MAX_WORDS = 250
# Share of the per-question time that a composed answer usually takes
IDEAL_MIN_TIME_RATIO = 0.3
# TF-IDF similarity that already indicates an on-topic answer
RELEVANCE_TARGET = 0.3
RESUME_TARGET = 0.25
NEUTRAL_SCORE = 50

WEIGHTS = {
    'communicationScore': 0.25,
    'confidenceScore': 0.15,
    'technicalAccuracyScore': 0.30,
    'resumeAlignmentScore': 0.15,
    'personalityFitScore': 0.15,
}

STRENGTH_THRESHOLD = 75
WEAKNESS_THRESHOLD = 55

FEEDBACK = {
    'communicationScore': (
        'Clear, well-developed answers',
        'Answers were too brief or too long to follow',
        'Practice STAR method responses to structure your answers',
    ),
    'confidenceScore': (
        'Confident use of the available time',
        'Answers were rushed or left unfinished',
        'Rehearse answers aloud to pace yourself within the time limit',
    ),
    'technicalAccuracyScore': (
        'Answers stayed focused on the questions asked',
        'Could elaborate more on technical details',
        'Prepare more specific examples that address the question directly',
    ),
    'resumeAlignmentScore': (
        'Relevant experience from the resume came through',
        'Limited connection between answers and listed experience',
        'Tie your answers back to projects and skills on your resume',
    ),
    'personalityFitScore': (
        'Engaged and consistent throughout the interview',
        'Engagement dropped over the course of the interview',
        'Research the company background and prepare questions about the team',
    ),
}


def calculate_similarity(text1, text2):
    """Calculates the cosine similarity between two texts."""
    if not text1 or not text2:
        return 0.0

    try:
        vectorizer = TfidfVectorizer().fit_transform([text1, text2])
        vectors = vectorizer.toarray()
        similarity = cosine_similarity(vectors)
        # The result is a matrix, we need the value from the off-diagonal
        return float(similarity[0][1])
    except ValueError as e:
        # Raised for inputs with no usable tokens (e.g. only stop characters)
        logger.warning("Similarity error: %s", e)
        return 0.0


def _clamp(value, low=0, high=100):
    return max(low, min(high, int(round(value))))


def _mean(values):
    return sum(values) / len(values) if values else 0.0


def _word_quality(answer_text):
    words = len((answer_text or '').split())
    if words == 0:
        return 0.0
    if words < IDEAL_MIN_WORDS:
        return words / IDEAL_MIN_WORDS
    if words <= IDEAL_MAX_WORDS:
        return 1.0
    # Rambling answers lose credit gradually
    return max(0.5, IDEAL_MAX_WORDS / words)


def _time_quality(time_taken, time_per_question):
    if not time_taken or not time_per_question:
        return 0.0
    ratio = time_taken / time_per_question
    if ratio < IDEAL_MIN_TIME_RATIO:
        return ratio / IDEAL_MIN_TIME_RATIO
    return 1.0


def score_question(question, time_per_question):
    """Per-question breakdown used for both the sub-scores and evaluationData."""
    answered = bool(question.answer_text or question.answer_video_url)
    relevance = calculate_similarity(question.question_text, question.answer_text)
    return {
        'questionNumber': question.question_number,
        'answered': answered,
        'wordCount': len((question.answer_text or '').split()),
        'timeTaken': question.time_taken,
        'communication': round(_word_quality(question.answer_text), 3),
        'confidence': round(_time_quality(question.time_taken, time_per_question) if answered else 0.0, 3),
        'relevance': round(min(relevance / RELEVANCE_TARGET, 1.0), 3),
    }


def _role_fit(role, overall):
    if overall >= 80:
        return f"Strong fit for {role} position. Answers were complete, relevant and well paced."
    if overall >= 60:
        return f"Good potential fit for {role} position. Some answers need more depth and specific examples."
    return f"Needs further preparation for {role} position. Focus on answering every question fully."


def build_evaluation(interview, questions, profile: Optional[ResumeProfile] = None):
    """Score a finished interview from its stored answers.

    Returns a payload keyed like the evaluation JSON (camelCase) so it can go
    straight through the same validation and persistence as a client POST.
    """
    breakdown = [score_question(q, interview.time_per_question) for q in questions]
    total = len(breakdown)
    answered = sum(1 for b in breakdown if b['answered'])
    completion = answered / total if total else 0.0

    communication = _clamp(100 * _mean([b['communication'] for b in breakdown]))
    confidence = _clamp(100 * _mean([b['confidence'] for b in breakdown]))
    technical = _clamp(100 * _mean([b['relevance'] for b in breakdown]))

    answers_text = ' '.join(q.answer_text for q in questions if q.answer_text)
    if profile is None or profile.is_empty:
        resume_alignment = NEUTRAL_SCORE
    else:
        similarity = calculate_similarity(answers_text, profile.as_text())
        resume_alignment = _clamp(100 * min(similarity / RESUME_TARGET, 1.0))

    personality = _clamp(0.4 * communication + 0.4 * confidence + 20 * completion)

    scores = {
        'communicationScore': communication,
        'confidenceScore': confidence,
        'technicalAccuracyScore': technical,
        'resumeAlignmentScore': resume_alignment,
        'personalityFitScore': personality,
    }
    overall = _clamp(sum(scores[field] * weight for field, weight in WEIGHTS.items()))
    scores['overallScore'] = overall

    strengths, weaknesses, suggestions = [], [], []
    for field, (strength, weakness, suggestion) in FEEDBACK.items():
        if scores[field] >= STRENGTH_THRESHOLD:
            strengths.append(strength)
        elif scores[field] < WEAKNESS_THRESHOLD:
            weaknesses.append(weakness)
            suggestions.append(suggestion)
    if answered < total:
        weaknesses.append(f"{total - answered} of {total} questions were left unanswered")
        suggestions.append("Aim to give at least a short answer to every question")

    return {
        'interviewId': interview.id,
        'userId': interview.user_id,
        **scores,
        'strengths': strengths,
        'weaknesses': weaknesses,
        'improvementSuggestions': suggestions,
        'roleFitRecommendation': _role_fit(interview.role, overall),
        'evaluationData': {
            'method': SCORING_METHOD,
            'questionCount': total,
            'answeredCount': answered,
            'completionRatio': round(completion, 3),
            'hasResume': profile is not None and not profile.is_empty,
            'perQuestion': breakdown,
        },
    }
