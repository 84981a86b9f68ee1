from extensions import db
from utilities.validators import utcnow

# Note: The db instance is created in extensions.py
# and initialized in the app factory to avoid circular imports.


def isoformat(value):
    return value.isoformat() + 'Z' if value else None


class User(db.Model):
    """An account that uploads resumes and takes interviews."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')
    avatar_url = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    resumes = db.relationship('Resume', backref='user', lazy=True, cascade="all, delete-orphan")
    interviews = db.relationship('Interview', backref='user', lazy=True, cascade="all, delete-orphan")
    evaluations = db.relationship('Evaluation', backref='user', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'fullName': self.full_name,
            'role': self.role,
            'avatarUrl': self.avatar_url,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<User {self.id} {self.email}>'


class Resume(db.Model):
    """An uploaded resume with its parsed skills/experience document."""
    __tablename__ = 'resumes'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    file_url = db.Column(db.String(1024), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    parsed_data = db.Column(db.JSON, nullable=True)
    suggested_roles = db.Column(db.JSON, nullable=True)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Interviews keep their history when a resume is removed; resume_id is nulled
    interviews = db.relationship('Interview', backref='resume', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'fileUrl': self.file_url,
            'fileName': self.file_name,
            'parsedData': self.parsed_data,
            'suggestedRoles': self.suggested_roles,
            'uploadedAt': isoformat(self.uploaded_at),
        }

    def __repr__(self):
        return f'<Resume {self.id} for User {self.user_id}>'


class Interview(db.Model):
    """Represents a single timed mock-interview session."""
    __tablename__ = 'interviews'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    resume_id = db.Column(db.Integer, db.ForeignKey('resumes.id', ondelete='SET NULL'), nullable=True)
    role = db.Column(db.String(255), nullable=False)
    time_per_question = db.Column(db.Integer, nullable=False)
    total_duration = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='in_progress', index=True)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    actual_duration = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # One-to-many with questions, ordered the way they are asked
    questions = db.relationship(
        'Question', backref='interview', lazy=True, cascade="all, delete-orphan",
        order_by='Question.question_number',
    )
    evaluation = db.relationship(
        'Evaluation', backref='interview', lazy=True, uselist=False, cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'resumeId': self.resume_id,
            'role': self.role,
            'timePerQuestion': self.time_per_question,
            'totalDuration': self.total_duration,
            'status': self.status,
            'startedAt': isoformat(self.started_at),
            'completedAt': isoformat(self.completed_at),
            'actualDuration': self.actual_duration,
            'createdAt': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Interview {self.id} {self.role} ({self.status})>'


class Question(db.Model):
    """One prompt within an interview, with its recorded answer metadata."""
    __tablename__ = 'questions'
    __table_args__ = (
        db.UniqueConstraint('interview_id', 'question_number', name='uq_question_number_per_interview'),
    )

    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey('interviews.id'), nullable=False, index=True)
    question_text = db.Column(db.Text, nullable=False)
    question_number = db.Column(db.Integer, nullable=False)
    asked_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    answer_text = db.Column(db.Text, nullable=True)
    answer_video_url = db.Column(db.String(1024), nullable=True)
    time_taken = db.Column(db.Integer, nullable=True)
    answered_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_answered(self):
        return bool(self.answer_text or self.answer_video_url)

    def to_dict(self):
        return {
            'id': self.id,
            'interviewId': self.interview_id,
            'questionText': self.question_text,
            'questionNumber': self.question_number,
            'askedAt': isoformat(self.asked_at),
            'answerText': self.answer_text,
            'answerVideoUrl': self.answer_video_url,
            'timeTaken': self.time_taken,
            'answeredAt': isoformat(self.answered_at),
        }

    def __repr__(self):
        return f'<Question {self.question_number} for Interview {self.interview_id}>'


class Evaluation(db.Model):
    """The scorecard produced after an interview completes."""
    __tablename__ = 'evaluations'

    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey('interviews.id'), nullable=False, unique=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    communication_score = db.Column(db.Integer, nullable=False)
    confidence_score = db.Column(db.Integer, nullable=False)
    technical_accuracy_score = db.Column(db.Integer, nullable=False)
    resume_alignment_score = db.Column(db.Integer, nullable=False)
    personality_fit_score = db.Column(db.Integer, nullable=False)
    overall_score = db.Column(db.Integer, nullable=False, index=True)
    strengths = db.Column(db.JSON, nullable=True)
    weaknesses = db.Column(db.JSON, nullable=True)
    improvement_suggestions = db.Column(db.JSON, nullable=True)
    role_fit_recommendation = db.Column(db.Text, nullable=True)
    evaluation_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # JSON score field name -> column attribute
    SCORE_COLUMNS = {
        'communicationScore': 'communication_score',
        'confidenceScore': 'confidence_score',
        'technicalAccuracyScore': 'technical_accuracy_score',
        'resumeAlignmentScore': 'resume_alignment_score',
        'personalityFitScore': 'personality_fit_score',
        'overallScore': 'overall_score',
    }

    def to_dict(self):
        data = {
            'id': self.id,
            'interviewId': self.interview_id,
            'userId': self.user_id,
        }
        for field, column in self.SCORE_COLUMNS.items():
            data[field] = getattr(self, column)
        data.update({
            'strengths': self.strengths,
            'weaknesses': self.weaknesses,
            'improvementSuggestions': self.improvement_suggestions,
            'roleFitRecommendation': self.role_fit_recommendation,
            'evaluationData': self.evaluation_data,
            'createdAt': isoformat(self.created_at),
        })
        return data

    def __repr__(self):
        return f'<Evaluation {self.id} for Interview {self.interview_id}>'
