"""Interview session state machine.

One `InterviewSession` owns the live state of a timed interview: which
question is on screen, both countdowns, and whether recording is paused.
Transitions are explicit; every event first applies the clock so expired
countdowns auto-advance (per question) or force-finish (total duration)
deterministically, whatever order requests arrive in.

The machine does not touch the database. Transitions return effect objects
(`AnswerRecorded`, `InterviewFinished`, `InterviewAbandoned`) that the HTTP
layer applies, and the session itself is persisted as a Redis hash.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from errors import InvalidTransition
from utilities.constants import SESSION_KEY_PREFIX, TERMINAL_SESSION_TTL

logger = logging.getLogger(__name__)

LOADING = 'loading'
AWAITING_PERMISSIONS = 'awaiting_permissions'
GENERATING_QUESTIONS = 'generating_questions'
READY = 'ready'
RECORDING = 'recording'
PAUSED = 'paused'
ADVANCING = 'advancing'
COMPLETED = 'completed'
ABANDONED = 'abandoned'

TERMINAL_STATES = (COMPLETED, ABANDONED)

# event -> states it may fire from
ALLOWED = {
    'open': (LOADING,),
    'grant_permissions': (AWAITING_PERMISSIONS,),
    'questions_ready': (GENERATING_QUESTIONS,),
    'start': (READY,),
    'pause': (RECORDING,),
    'resume': (PAUSED,),
    'advance': (RECORDING, PAUSED),
    'finish': (READY, RECORDING, PAUSED, ADVANCING),
    'abandon': (LOADING, AWAITING_PERMISSIONS, GENERATING_QUESTIONS, READY, RECORDING, PAUSED),
}


def now():
    return time.time()


@dataclass
class AnswerRecorded:
    question_id: int
    time_taken: int
    at: float
    answer_text: Optional[str] = None
    answer_video_url: Optional[str] = None


@dataclass
class InterviewFinished:
    actual_duration: int
    at: float


@dataclass
class InterviewAbandoned:
    actual_duration: int
    at: float


class InterviewSession:
    def __init__(self, interview_id, time_per_question, total_duration):
        self.interview_id = interview_id
        self.time_per_question = time_per_question
        self.total_duration = total_duration
        self.state = LOADING
        self.question_ids: List[int] = []
        self.current_index = 0
        # Seconds already spent, excluding the span since `running_since`
        self.question_elapsed = 0.0
        self.total_elapsed = 0.0
        self.running_since: Optional[float] = None
        self.evaluation_id: Optional[int] = None

    # --- persistence -----------------------------------------------------

    @staticmethod
    def redis_key(interview_id):
        return f"{SESSION_KEY_PREFIX}:{interview_id}"

    def to_dict(self):
        return {
            'interview_id': self.interview_id,
            'time_per_question': self.time_per_question,
            'total_duration': self.total_duration,
            'state': self.state,
            'question_ids': json.dumps(self.question_ids),
            'current_index': self.current_index,
            'question_elapsed': self.question_elapsed,
            'total_elapsed': self.total_elapsed,
            'running_since': '' if self.running_since is None else self.running_since,
            'evaluation_id': '' if self.evaluation_id is None else self.evaluation_id,
        }

    @classmethod
    def from_dict(cls, data):
        session = cls(
            int(data['interview_id']),
            int(data['time_per_question']),
            int(data['total_duration']),
        )
        session.state = data.get('state') or LOADING
        try:
            session.question_ids = [int(q) for q in json.loads(data.get('question_ids') or '[]')]
        except (json.JSONDecodeError, TypeError, ValueError):
            session.question_ids = []
        session.current_index = int(data.get('current_index') or 0)
        session.question_elapsed = float(data.get('question_elapsed') or 0.0)
        session.total_elapsed = float(data.get('total_elapsed') or 0.0)
        running_since = data.get('running_since')
        session.running_since = float(running_since) if running_since not in (None, '') else None
        evaluation_id = data.get('evaluation_id')
        session.evaluation_id = int(evaluation_id) if evaluation_id not in (None, '') else None
        return session

    def save(self, r):
        key = self.redis_key(self.interview_id)
        r.hset(key, mapping=self.to_dict())
        if self.state in TERMINAL_STATES:
            r.expire(key, TERMINAL_SESSION_TTL)

    @classmethod
    def discard(cls, r, interview_ids):
        """Drop the stored sessions of interviews that no longer exist."""
        keys = [cls.redis_key(interview_id) for interview_id in interview_ids]
        if keys:
            r.delete(*keys)

    @classmethod
    def load(cls, r, interview_id):
        data = r.hgetall(cls.redis_key(interview_id))
        if data:
            return cls.from_dict(data)
        return None

    # --- clock -----------------------------------------------------------

    def _running(self, at):
        if self.state != RECORDING or self.running_since is None:
            return 0.0
        return max(0.0, at - self.running_since)

    def question_time_remaining(self, at):
        return max(0.0, self.time_per_question - (self.question_elapsed + self._running(at)))

    def total_time_remaining(self, at):
        return max(0.0, self.total_duration - (self.total_elapsed + self._running(at)))

    def _bank(self, at):
        """Fold the running span into the accumulated counters."""
        span = self._running(at)
        self.question_elapsed += span
        self.total_elapsed += span
        self.running_since = at if self.state == RECORDING else None

    @property
    def current_question_id(self):
        if 0 <= self.current_index < len(self.question_ids):
            return self.question_ids[self.current_index]
        return None

    def _check(self, event):
        if self.state not in ALLOWED[event]:
            raise InvalidTransition(f"Cannot {event.replace('_', ' ')} while session is {self.state}")

    def tick(self, at):
        """Apply expired countdowns up to `at` and return the resulting effects."""
        effects = []
        while self.state == RECORDING and self.running_since is not None:
            total_deadline = self.running_since + (self.total_duration - self.total_elapsed)
            question_deadline = self.running_since + (self.time_per_question - self.question_elapsed)
            if total_deadline <= question_deadline and total_deadline <= at:
                effects.extend(self.finish(total_deadline))
            elif question_deadline <= at:
                effects.extend(self.advance(question_deadline))
            else:
                break
        return effects

    # --- transitions -----------------------------------------------------

    def open(self):
        self._check('open')
        self.state = AWAITING_PERMISSIONS

    def grant_permissions(self):
        self._check('grant_permissions')
        self.state = GENERATING_QUESTIONS

    def questions_ready(self, question_ids):
        self._check('questions_ready')
        if not question_ids:
            raise InvalidTransition('Interview has no questions to ask')
        self.question_ids = list(question_ids)
        self.current_index = 0
        self.state = READY

    def start(self, at):
        self._check('start')
        self.state = RECORDING
        self.question_elapsed = 0.0
        self.running_since = at
        return []

    def pause(self, at):
        self._check('pause')
        self._bank(at)
        self.state = PAUSED
        self.running_since = None
        return []

    def resume(self, at):
        self._check('resume')
        self.state = RECORDING
        self.running_since = at
        return []

    def advance(self, at, answer_text=None, answer_video_url=None):
        """Record the current answer and move on; finishes after the last question."""
        self._check('advance')
        self._bank(at)
        self.state = ADVANCING
        self.running_since = None

        effects = [AnswerRecorded(
            question_id=self.current_question_id,
            time_taken=max(1, int(round(self.question_elapsed))),
            at=at,
            answer_text=answer_text,
            answer_video_url=answer_video_url,
        )]

        if self.current_index < len(self.question_ids) - 1:
            self.current_index += 1
            self.question_elapsed = 0.0
            self.state = RECORDING
            self.running_since = at
        else:
            effects.extend(self.finish(at))
        return effects

    def finish(self, at):
        self._check('finish')
        self._bank(at)
        self.state = COMPLETED
        self.running_since = None
        actual = min(self.total_duration, int(round(self.total_elapsed)))
        logger.info("Interview %s finished after %ss", self.interview_id, actual)
        return [InterviewFinished(actual_duration=actual, at=at)]

    def abandon(self, at):
        self._check('abandon')
        self._bank(at)
        self.state = ABANDONED
        self.running_since = None
        actual = min(self.total_duration, int(round(self.total_elapsed)))
        return [InterviewAbandoned(actual_duration=actual, at=at)]

    def to_public_dict(self, at):
        return {
            'interviewId': self.interview_id,
            'state': self.state,
            'currentQuestionIndex': self.current_index,
            'currentQuestionId': self.current_question_id if self.state not in TERMINAL_STATES else None,
            'questionIds': self.question_ids,
            'questionTimeRemaining': int(round(self.question_time_remaining(at))),
            'totalTimeRemaining': int(round(self.total_time_remaining(at))),
            'timePerQuestion': self.time_per_question,
            'totalDuration': self.total_duration,
            'evaluationId': self.evaluation_id,
        }
