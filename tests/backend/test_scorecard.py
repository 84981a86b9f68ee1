from types import SimpleNamespace

import pytest

import scorecard
from utilities.constants import SCORE_FIELDS
from utilities.resume import ResumeProfile

QUESTION = 'Describe a challenging technical problem you solved and your approach.'
STRONG_ANSWER = ' '.join([
    'The challenging technical problem I solved was a slow reporting service.',
    'My approach was to profile the problem, find the slow query, and redesign the technical approach',
    'with caching and batched writes, then measure the result with the team before and after the change',
    'so the problem stayed solved.',
])


def _interview(role='Software Engineer', per_question=120):
    return SimpleNamespace(id=3, user_id=9, role=role, time_per_question=per_question)


def _question(number, answer=None, time_taken=None, text=QUESTION):
    return SimpleNamespace(
        question_number=number, question_text=text, answer_text=answer,
        answer_video_url=None, time_taken=time_taken,
    )


def test_calculate_similarity_bounds():
    assert scorecard.calculate_similarity('', 'anything') == 0.0
    assert scorecard.calculate_similarity('python flask', None) == 0.0
    assert scorecard.calculate_similarity('python flask redis', 'python flask redis') == pytest.approx(1.0)
    assert scorecard.calculate_similarity('apples oranges', 'kernels drivers') == pytest.approx(0.0)


def test_all_unanswered_scores_low():
    questions = [_question(n) for n in range(1, 6)]
    result = scorecard.build_evaluation(_interview(), questions)

    assert result['communicationScore'] == 0
    assert result['confidenceScore'] == 0
    assert result['technicalAccuracyScore'] == 0
    assert result['resumeAlignmentScore'] == scorecard.NEUTRAL_SCORE
    assert result['overallScore'] < 20
    assert '5 of 5 questions were left unanswered' in result['weaknesses']
    assert result['roleFitRecommendation'].startswith('Needs further preparation for Software Engineer')
    assert result['evaluationData']['answeredCount'] == 0
    assert result['evaluationData']['hasResume'] is False


def test_strong_answers_score_high():
    questions = [_question(n, STRONG_ANSWER, time_taken=90) for n in range(1, 6)]
    result = scorecard.build_evaluation(_interview(), questions)

    assert result['communicationScore'] == 100
    assert result['confidenceScore'] == 100
    assert result['technicalAccuracyScore'] >= 70
    assert result['overallScore'] >= 80
    assert 'Clear, well-developed answers' in result['strengths']
    assert result['roleFitRecommendation'].startswith('Strong fit for Software Engineer')
    assert result['evaluationData']['method'] == scorecard.SCORING_METHOD
    assert result['evaluationData']['completionRatio'] == 1.0


def test_scores_are_integers_in_range_and_deterministic():
    questions = [
        _question(1, 'Short answer.', time_taken=5),
        _question(2, STRONG_ANSWER, time_taken=100),
        _question(3),
    ]
    first = scorecard.build_evaluation(_interview(), questions)
    second = scorecard.build_evaluation(_interview(), questions)
    assert first == second
    for field in SCORE_FIELDS:
        assert isinstance(first[field], int)
        assert 0 <= first[field] <= 100
    assert first['interviewId'] == 3
    assert first['userId'] == 9
    assert [q['questionNumber'] for q in first['evaluationData']['perQuestion']] == [1, 2, 3]


def test_resume_alignment_uses_profile():
    questions = [_question(1, STRONG_ANSWER, time_taken=90)]
    matching = ResumeProfile(skills=['caching', 'query', 'reporting'], summary='Solved slow reporting problems.')
    unrelated = ResumeProfile(skills=['watercolor', 'pottery'])

    aligned = scorecard.build_evaluation(_interview(), questions, matching)
    misaligned = scorecard.build_evaluation(_interview(), questions, unrelated)
    assert aligned['resumeAlignmentScore'] > misaligned['resumeAlignmentScore']
    assert misaligned['resumeAlignmentScore'] == 0
    assert aligned['evaluationData']['hasResume'] is True


def test_rushed_answers_lower_confidence():
    rushed = scorecard.score_question(_question(1, STRONG_ANSWER, time_taken=12), 120)
    paced = scorecard.score_question(_question(1, STRONG_ANSWER, time_taken=60), 120)
    assert rushed['confidence'] < paced['confidence'] == 1.0
