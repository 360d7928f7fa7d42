from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import func

from fld import db
from fld.models import Game, GameState, TeamQuiz, IndividualQuiz, TeamSubmission, IndividualSubmission
from . import SubmissionError
from .scoring import answers_match, missing_answers, normalize_answers, score_answers
from .sync import commit_and_notify, game_lock
from .rounds import find_station


def _team(game: Game, team_id: str) -> Dict[str, Any]:
    for team in game.config.get('teams') or []:
        if team.get('id') == team_id:
            return team
    raise SubmissionError('Team not found', status=404)


def _state(game: Game) -> GameState:
    state = GameState.query.filter_by(game_id=game.id).populate_existing().first()
    if not state:
        raise SubmissionError('Game has not started', status=409)
    return state


def ensure_team_submissions(game: Game) -> int:
    """Create an empty submission row for every team that lacks one."""
    existing = {s.team_id for s in TeamSubmission.query.filter_by(game_id=game.id).all()}
    created = 0
    for team in game.config.get('teams') or []:
        if team.get('id') in existing:
            continue
        db.session.add(TeamSubmission(game_id=game.id, team_id=team.get('id'), answers={}, score=0, submitted=False))
        created += 1
    return created


def submit_team_quiz(game: Game, team_id: str, answers: Any) -> TeamSubmission:
    """Score and store a team's quiz answers.

    The score is computed here from the stored questions. A submission that
    is already marked ``submitted`` is never scored again.
    """
    _team(game, team_id)
    with game_lock(game.id):
        state = _state(game)
        if not state.team_quiz_unlocked:
            raise SubmissionError('Team quiz is locked', status=403)
        quiz = TeamQuiz.query.filter_by(game_id=game.id).first()
        questions = quiz.questions if quiz else []
        if not questions:
            raise SubmissionError('Team quiz has no questions', status=409)

        submission = TeamSubmission.query.filter_by(game_id=game.id, team_id=team_id).populate_existing().first()
        if submission and submission.submitted:
            raise SubmissionError('Team quiz already submitted', status=409)

        normalized = normalize_answers(questions, answers)
        missing = missing_answers(questions, normalized)
        if missing:
            raise SubmissionError(f"All questions must be answered (missing: {', '.join(missing)})")

        if not submission:
            submission = TeamSubmission(game_id=game.id, team_id=team_id)
            db.session.add(submission)
        submission.answers = normalized
        submission.score = score_answers(questions, normalized)
        submission.submitted = True
        submission.submitted_at = datetime.now(timezone.utc)
        commit_and_notify(game, 'submit-team')
        return submission


def find_individual_submission(game_id: int, team_id: str, player_name: Any):
    """A player's submission for a team; names match trimmed and case-insensitive."""
    name = str(player_name or '').strip()
    if not name:
        return None
    return IndividualSubmission.query.filter(
        IndividualSubmission.game_id == game_id,
        IndividualSubmission.team_id == team_id,
        func.lower(IndividualSubmission.player_name) == name.lower(),
    ).populate_existing().first()


def submit_individual_quiz(game: Game, team_id: str, player_name: Any, answers: Any) -> IndividualSubmission:
    """Score and store one player's quiz answers, once per (team, name).

    Names are trimmed and compared case-insensitively, so "Ada" and "ada"
    are the same player. The name is stored as first typed.
    """
    name = str(player_name or '').strip()
    if not name:
        raise SubmissionError('Player name is required')
    _team(game, team_id)
    with game_lock(game.id):
        state = _state(game)
        if not state.individual_quiz_unlocked:
            raise SubmissionError('Individual quiz is locked', status=403)
        quiz = IndividualQuiz.query.filter_by(game_id=game.id).first()
        questions = quiz.questions if quiz else []
        if not questions:
            raise SubmissionError('Individual quiz has no questions', status=409)

        submission = find_individual_submission(game.id, team_id, name)
        if submission and submission.submitted:
            raise SubmissionError('You have already submitted this quiz', status=409)

        normalized = normalize_answers(questions, answers)
        if not submission:
            submission = IndividualSubmission(game_id=game.id, team_id=team_id, player_name=name)
            db.session.add(submission)
        submission.answers = normalized
        submission.score = score_answers(questions, normalized)
        submission.submitted = True
        submission.submitted_at = datetime.now(timezone.utc)
        commit_and_notify(game, 'submit-individual')
        return submission


def check_station_answer(game: Game, team_id: str, station_id: str, answer: Any) -> bool:
    """Whether ``answer`` solves a task station. Awards no points."""
    _team(game, team_id)
    station = find_station(game.config, station_id)
    if not station:
        raise SubmissionError('Station not found', status=404)
    if station.get('type') != 'task' or not station.get('taskAnswer'):
        raise SubmissionError('Station has no task answer')
    return answers_match({'type': 'open', 'correctAnswer': station['taskAnswer']}, answer)
