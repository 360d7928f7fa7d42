"""Authoritative game-state owner.

Clients never write state directly. Every mutation goes through
``mutate_game_state`` which serialises writers per game, re-reads the
row, applies the computed fields, commits and then tells the game's
Socket.IO room to reload. ``load_bundle`` is the read side: one snapshot
of everything a view renders.
"""

import threading
from typing import Any, Callable, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from fld import db, socketio
from fld.models import Game, GameState, TeamQuiz, IndividualQuiz, TeamSubmission, IndividualSubmission
from . import GameError, RoundError
from . import rounds
from .scoring import team_leaderboard, individual_leaderboard
from .setup import public_questions


_locks: Dict[int, threading.Lock] = {}
_locks_guard = threading.Lock()


def game_lock(game_id: int) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(game_id)
        if lock is None:
            lock = _locks[game_id] = threading.Lock()
        return lock


def forget_game(game_id: int) -> None:
    with _locks_guard:
        _locks.pop(game_id, None)


def room_for(game_id: int) -> str:
    return f"game:{game_id}"


def notify(game: Game) -> None:
    socketio.emit('state_update', {'game_id': game.id, 'code': game.code}, to=room_for(game.id), namespace='/ws')


def commit_and_notify(game: Game, action: str) -> None:
    """Commit the session; on success push ``state_update`` to the game's room."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[store-error] game={game.id} action={action}")
        raise GameError('Could not save game state', status=500)
    notify(game)


def default_state_fields() -> Dict[str, Any]:
    return {
        'is_running': False,
        'current_round': 0,
        'time_remaining': 0,
        'is_paused': False,
        'team_quiz_unlocked': False,
        'individual_quiz_unlocked': False,
        'scores_revealed': False,
        'game_ended': False,
        'pause_video_url': None,
    }


def _fresh_state(game_id: int) -> Optional[GameState]:
    return GameState.query.filter_by(game_id=game_id).populate_existing().first()


def mutate_game_state(game_id: int, compute: Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]],
                      action: str = 'update', require_started: bool = False) -> Dict[str, Any]:
    """Apply ``compute(config, state) -> changes`` to a game's state row.

    Runs under the game's lock against a freshly read row, so two actions
    on the same game never interleave their read and write. The row is
    created when missing, unless ``require_started`` is set, in which case
    a game without a state row is rejected. Nothing is written or broadcast
    when ``compute`` returns no changes.
    """
    with game_lock(game_id):
        game = Game.query.filter_by(id=game_id).populate_existing().first()
        if not game:
            raise GameError('Game not found', status=404)
        state = _fresh_state(game_id)
        created = state is None
        if created and require_started:
            raise RoundError('Game has not started')
        if created:
            state = GameState(game_id=game_id, **default_state_fields())
            db.session.add(state)
        try:
            changes = compute(game.config, state.to_dict())
        except GameError:
            db.session.rollback()
            raise
        if not changes and not created:
            return state.to_dict()
        for field, value in (changes or {}).items():
            setattr(state, field, value)
        commit_and_notify(game, action)
        log = current_app.logger.debug if action == 'tick' else current_app.logger.info
        log(f"[{action}] game={game_id} changes={changes}")
        return state.to_dict()


def _coerce(field: str, value: Any) -> Any:
    if field in ('current_round', 'time_remaining'):
        if isinstance(value, bool):
            raise GameError(f'{field} must be an integer')
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise GameError(f'{field} must be an integer')
        if value < 0:
            raise GameError(f'{field} must not be negative')
        return value
    if field == 'pause_video_url':
        return str(value) if value else None
    if not isinstance(value, bool):
        raise GameError(f'{field} must be a boolean')
    return value


def update_game_state(game_id: int, partial: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``partial`` into the stored state and write it back."""
    if not isinstance(partial, dict):
        raise GameError('state update must be an object')
    unknown = sorted(set(partial) - set(GameState.FIELDS))
    if unknown:
        raise GameError(f"unknown state field(s): {', '.join(unknown)}")
    changes = {field: _coerce(field, value) for field, value in partial.items()}
    return mutate_game_state(game_id, lambda config, state: changes, action='update_state')


def load_bundle(game_id: int, for_players: bool = False) -> Optional[Dict[str, Any]]:
    """Everything a view renders for one game, or None for an unknown game.

    Read order: game, state, team quiz, individual quiz, team submissions,
    individual submissions. The player projection drops correct answers,
    station task answers and other teams' answers, and only carries
    scores once they are revealed.
    """
    game = Game.query.filter_by(id=game_id).populate_existing().first()
    if not game:
        return None
    config = game.config
    state_row = _fresh_state(game_id)
    state = state_row.to_dict() if state_row else None
    tq = TeamQuiz.query.filter_by(game_id=game_id).first()
    iq = IndividualQuiz.query.filter_by(game_id=game_id).first()
    team_quiz = tq.questions if tq else []
    individual_quiz = iq.questions if iq else []
    team_subs = {
        s.team_id: s.to_dict() for s in TeamSubmission.query.filter_by(game_id=game_id).populate_existing().all()
    }
    individual_subs = [
        s.to_dict() for s in IndividualSubmission.query.filter_by(game_id=game_id)
        .populate_existing().order_by(IndividualSubmission.score.desc(), IndividualSubmission.id).all()
    ]
    current_round = (state or {}).get('current_round') or 0
    revealed = bool((state or {}).get('scores_revealed'))
    limit = current_app.config.get('LEADERBOARD_INDIVIDUAL_LIMIT', 10)

    bundle = {
        'game': game.to_dict(include_config=False),
        'config': config,
        'branding': game.branding,
        'game_state': state,
        'team_quiz': team_quiz,
        'individual_quiz': individual_quiz,
        'team_submissions': team_subs,
        'individual_submissions': individual_subs,
        'rounds': rounds.summary(config, state),
        'positions': rounds.team_positions(config, current_round, include_answers=not for_players),
    }
    if not for_players or revealed:
        bundle['leaderboard'] = {
            'teams': team_leaderboard(config, team_subs),
            'individuals': individual_leaderboard(individual_subs, limit),
        }
    if for_players:
        bundle['config'] = _player_config(config)
        bundle['team_quiz'] = public_questions(team_quiz)
        bundle['individual_quiz'] = public_questions(individual_quiz)
        bundle['team_submissions'] = {
            tid: _player_submission(s, revealed) for tid, s in team_subs.items()
        }
        bundle['individual_submissions'] = [
            _player_submission(s, revealed) for s in individual_subs
        ]
    return bundle


def _player_config(config: Dict[str, Any]) -> Dict[str, Any]:
    config = dict(config)
    config['stations'] = [
        {k: v for k, v in s.items() if k != 'taskAnswer'} for s in config.get('stations') or []
    ]
    config.pop('teamQuiz', None)
    config.pop('individualQuiz', None)
    return config


def _player_submission(sub: Dict[str, Any], revealed: bool) -> Dict[str, Any]:
    sub = {k: v for k, v in sub.items() if k != 'answers'}
    if not revealed:
        sub.pop('score', None)
    return sub
