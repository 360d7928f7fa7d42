from fld import db, bcrypt
from flask import current_app
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import string
import random


def _utcnow():
    return datetime.now(timezone.utc)


def _load_json(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


def _iso(value):
    return value.isoformat() if value else None


class GameMaster(UserMixin, db.Model):
    __tablename__ = 'game_masters'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


def generate_game_code(prefix='FLD-', length=6):
    """Generate a unique join code such as ``FLD-K3P9ZQ``."""
    while True:
        code = prefix + ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'games'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, default='')
    code = db.Column(db.String(16), unique=True, index=True)
    config_json = db.Column('config', db.Text, nullable=True)
    branding_json = db.Column('branding', db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    team_quiz = db.relationship('TeamQuiz', uselist=False, cascade='all, delete-orphan', back_populates='game')
    individual_quiz = db.relationship('IndividualQuiz', uselist=False, cascade='all, delete-orphan', back_populates='game')
    state = db.relationship('GameState', uselist=False, cascade='all, delete-orphan', back_populates='game')
    team_submissions = db.relationship('TeamSubmission', cascade='all, delete-orphan')
    individual_submissions = db.relationship('IndividualSubmission', cascade='all, delete-orphan')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.code:
            prefix = current_app.config.get('GAME_CODE_PREFIX', 'FLD-') if current_app else 'FLD-'
            self.code = generate_game_code(prefix)

    @property
    def config(self):
        return _load_json(self.config_json, {})

    @config.setter
    def config(self, value):
        self.config_json = json.dumps(value)

    @property
    def branding(self):
        return _load_json(self.branding_json, {})

    @branding.setter
    def branding(self, value):
        self.branding_json = json.dumps(value)

    def join_url(self):
        base = current_app.config.get('PLAYER_BASE_URL', '').rstrip('/')
        return f"{base}/play?code={self.code}"

    def to_dict(self, include_config=True):
        data = {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'join_url': self.join_url(),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if include_config:
            base = current_app.config.get('PLAYER_BASE_URL', '').rstrip('/')
            config = self.config
            data['config'] = config
            data['branding'] = self.branding
            data['individual_quiz_urls'] = {
                t.get('id'): f"{base}/individual-quiz?game={self.id}&team={t.get('id')}"
                for t in config.get('teams', [])
            }
        return data


class QuizMixin:
    id = db.Column(db.Integer, primary_key=True)
    questions_json = db.Column('questions', db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def questions(self):
        return _load_json(self.questions_json, [])

    @questions.setter
    def questions(self, value):
        self.questions_json = json.dumps(value)


class TeamQuiz(QuizMixin, db.Model):
    __tablename__ = 'team_quizzes'
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), unique=True, nullable=False)
    game = db.relationship('Game', back_populates='team_quiz')


class IndividualQuiz(QuizMixin, db.Model):
    __tablename__ = 'individual_quizzes'
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), unique=True, nullable=False)
    game = db.relationship('Game', back_populates='individual_quiz')


class GameState(db.Model):
    __tablename__ = 'game_state'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), unique=True, nullable=False)
    is_running = db.Column(db.Boolean, default=False, nullable=False)
    current_round = db.Column(db.Integer, default=0, nullable=False)
    time_remaining = db.Column(db.Integer, default=0, nullable=False)
    is_paused = db.Column(db.Boolean, default=False, nullable=False)
    team_quiz_unlocked = db.Column(db.Boolean, default=False, nullable=False)
    individual_quiz_unlocked = db.Column(db.Boolean, default=False, nullable=False)
    scores_revealed = db.Column(db.Boolean, default=False, nullable=False)
    game_ended = db.Column(db.Boolean, default=False, nullable=False)
    pause_video_url = db.Column(db.String(512), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    game = db.relationship('Game', back_populates='state')

    FIELDS = (
        'is_running',
        'current_round',
        'time_remaining',
        'is_paused',
        'team_quiz_unlocked',
        'individual_quiz_unlocked',
        'scores_revealed',
        'game_ended',
        'pause_video_url',
    )

    def to_dict(self):
        data = {field: getattr(self, field) for field in self.FIELDS}
        data['updated_at'] = _iso(self.updated_at)
        return data


class TeamSubmission(db.Model):
    __tablename__ = 'team_submissions'
    __table_args__ = (db.UniqueConstraint('game_id', 'team_id', name='uq_team_submission'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), nullable=False, index=True)
    team_id = db.Column(db.String(64), nullable=False)
    answers_json = db.Column('answers', db.Text, nullable=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    submitted = db.Column(db.Boolean, default=False, nullable=False)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def answers(self):
        return _load_json(self.answers_json, {})

    @answers.setter
    def answers(self, value):
        self.answers_json = json.dumps(value)

    def to_dict(self, include_answers=True):
        data = {
            'team_id': self.team_id,
            'score': self.score,
            'submitted': self.submitted,
            'submitted_at': _iso(self.submitted_at),
        }
        if include_answers:
            data['answers'] = self.answers
        return data


class IndividualSubmission(db.Model):
    __tablename__ = 'individual_submissions'
    __table_args__ = (db.UniqueConstraint('game_id', 'team_id', 'player_name', name='uq_individual_submission'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), nullable=False, index=True)
    team_id = db.Column(db.String(64), nullable=False)
    player_name = db.Column(db.String(128), nullable=False)
    answers_json = db.Column('answers', db.Text, nullable=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    submitted = db.Column(db.Boolean, default=False, nullable=False)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def answers(self):
        return _load_json(self.answers_json, {})

    @answers.setter
    def answers(self, value):
        self.answers_json = json.dumps(value)

    def to_dict(self, include_answers=True):
        data = {
            'team_id': self.team_id,
            'player_name': self.player_name,
            'score': self.score,
            'submitted': self.submitted,
            'submitted_at': _iso(self.submitted_at),
        }
        if include_answers:
            data['answers'] = self.answers
        return data
