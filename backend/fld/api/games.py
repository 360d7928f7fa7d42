from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError
from fld import db, socketio
from fld.models import Game, TeamQuiz, IndividualQuiz
from fld.services.games import ConfigError, GameError
from fld.services.games import rounds
from fld.services.games.setup import (
    default_branding,
    default_config,
    export_payload,
    normalize_branding,
    normalize_config,
    normalize_questions,
    parse_import,
    with_generated_stations,
    with_generated_teams,
)
from fld.services.games.submissions import ensure_team_submissions
from fld.services.games.sync import (
    commit_and_notify,
    forget_game,
    load_bundle,
    mutate_game_state,
    room_for,
    update_game_state,
)
from fld.services.games.timer import schedule_timer


games = Blueprint('games', __name__)

QUIZ_MODELS = {'team': TeamQuiz, 'individual': IndividualQuiz}


def _get_game(game_id: int) -> Game:
    return Game.query.filter_by(id=game_id).first_or_404(description='Game not found')


def _bundle_response(game_id: int, status: int = 200):
    return jsonify(load_bundle(game_id)), status


def _start_timer_if_running(game_id: int, state: dict) -> None:
    if state.get('is_running') and not state.get('game_ended') and state.get('time_remaining', 0) > 0:
        schedule_timer(current_app._get_current_object(), game_id)


def _create_game(name, config, branding, team_quiz, individual_quiz) -> Game:
    new_game = Game(name=name)
    new_game.config = config
    new_game.branding = branding
    new_game.team_quiz = TeamQuiz(questions=team_quiz)
    new_game.individual_quiz = IndividualQuiz(questions=individual_quiz)
    db.session.add(new_game)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[create] failed name={name!r}")
        raise GameError('Could not create game', status=500)
    current_app.logger.info(f"[create] game={new_game.id} code={new_game.code} name={name!r}")
    return new_game


@games.route('/', methods=['GET'])
@login_required
def list_games():
    rows = Game.query.order_by(Game.created_at.desc(), Game.id.desc()).all()
    return jsonify([g.to_dict(include_config=False) for g in rows])


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True) or {}
    name = str(data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Game name is required'}), 400
    new_game = _create_game(name, default_config(name), default_branding(), [], [])
    return jsonify(new_game.to_dict()), 201


@games.route('/import', methods=['POST'])
@login_required
def import_game():
    data = request.get_json(silent=True)
    parsed = parse_import(data)
    name = str((data or {}).get('name') or parsed['config'].get('gameName') or '').strip() or 'Imported game'
    parsed['config']['gameName'] = name
    new_game = _create_game(name, parsed['config'], parsed['branding'], parsed['team_quiz'], parsed['individual_quiz'])
    return jsonify(new_game.to_dict()), 201


@games.route('/by-code/<string:code>', methods=['GET'])
@login_required
def get_game_by_code(code):
    game = Game.query.filter_by(code=code.strip().upper()).first_or_404(description='Game not found')
    return jsonify(game.to_dict())


@games.route('/<int:game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    return jsonify(_get_game(game_id).to_dict())


@games.route('/<int:game_id>', methods=['PUT'])
@login_required
def save_game(game_id):
    """Save setup: name, config, branding and optionally both question lists."""
    game = _get_game(game_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ConfigError('Request body must be a JSON object')

    # Validate everything before touching the row so a bad field saves nothing
    config = normalize_config(data['config']) if 'config' in data else game.config
    branding = normalize_branding(data['branding']) if 'branding' in data else None
    # Quiz lists embedded in the config live in their own tables, as on import
    quizzes = {}
    for kind, key in (('team', 'teamQuiz'), ('individual', 'individualQuiz')):
        embedded = config.pop(key, None)
        if f'{kind}_quiz' in data:
            quizzes[kind] = normalize_questions(data[f'{kind}_quiz'])
        elif embedded is not None and 'config' in data:
            quizzes[kind] = embedded
    name = str(data.get('name') or '').strip() or config.get('gameName') or game.name
    config['gameName'] = name

    game.name = name
    game.config = config
    if branding is not None:
        game.branding = branding
    for kind, questions in quizzes.items():
        _set_questions(game, kind, questions)

    commit_and_notify(game, 'save')
    current_app.logger.info(f"[save] game={game.id} name={game.name!r}")
    return jsonify(game.to_dict())


@games.route('/<int:game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    game = _get_game(game_id)
    code = game.code
    db.session.delete(game)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[delete] failed game={game_id}")
        raise GameError('Could not delete game', status=500)
    forget_game(game_id)
    socketio.emit('game_deleted', {'game_id': game_id, 'code': code}, to=room_for(game_id), namespace='/ws')
    current_app.logger.info(f"[delete] game={game_id} code={code}")
    return jsonify({'message': 'Game deleted'})


@games.route('/<int:game_id>/setup/stations', methods=['POST'])
@login_required
def generate_stations(game_id):
    game = _get_game(game_id)
    data = request.get_json(silent=True) or {}
    game.config = with_generated_stations(game.config, data.get('numStations'))
    commit_and_notify(game, 'setup-stations')
    return jsonify(game.to_dict())


@games.route('/<int:game_id>/setup/teams', methods=['POST'])
@login_required
def generate_teams(game_id):
    game = _get_game(game_id)
    data = request.get_json(silent=True) or {}
    game.config = with_generated_teams(game.config, data.get('numTeams'))
    commit_and_notify(game, 'setup-teams')
    return jsonify(game.to_dict())


def _set_questions(game: Game, kind: str, questions: list) -> None:
    model = QUIZ_MODELS[kind]
    quiz = model.query.filter_by(game_id=game.id).first()
    if not quiz:
        quiz = model(game_id=game.id)
        db.session.add(quiz)
    quiz.questions = questions


@games.route('/<int:game_id>/quizzes/<string:kind>', methods=['PUT'])
@login_required
def save_quiz(game_id, kind):
    if kind not in QUIZ_MODELS:
        return jsonify({'error': 'Quiz kind must be team or individual'}), 404
    game = _get_game(game_id)
    data = request.get_json(silent=True) or {}
    questions = normalize_questions(data.get('questions'))
    _set_questions(game, kind, questions)
    commit_and_notify(game, f'save-{kind}-quiz')
    return jsonify({'kind': kind, 'questions': questions})


@games.route('/<int:game_id>/export', methods=['GET'])
@login_required
def export_game(game_id):
    game = _get_game(game_id)
    tq = TeamQuiz.query.filter_by(game_id=game.id).first()
    iq = IndividualQuiz.query.filter_by(game_id=game.id).first()
    payload = export_payload(
        game.config,
        game.branding,
        tq.questions if tq else [],
        iq.questions if iq else [],
    )
    return jsonify(payload)


@games.route('/<int:game_id>/bundle', methods=['GET'])
@login_required
def get_bundle(game_id):
    _get_game(game_id)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/leaderboard', methods=['GET'])
@login_required
def get_leaderboard(game_id):
    _get_game(game_id)
    return jsonify(load_bundle(game_id)['leaderboard'])


@games.route('/<int:game_id>/state', methods=['PATCH'])
@login_required
def patch_state(game_id):
    _get_game(game_id)
    data = request.get_json(silent=True)
    state = update_game_state(game_id, data)
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    game = _get_game(game_id)
    config = game.config
    if len(config.get('teams') or []) < 2 or len(config.get('stations') or []) < 1:
        return jsonify({'error': 'A game needs at least 2 teams and 1 station'}), 400
    for kind, model in QUIZ_MODELS.items():
        if not model.query.filter_by(game_id=game.id).first():
            _set_questions(game, kind, [])
    ensure_team_submissions(game)
    state = mutate_game_state(game_id, lambda cfg, st: rounds.start_updates(cfg), action='start')
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/next-round', methods=['POST'])
@login_required
def next_round(game_id):
    _get_game(game_id)
    state = mutate_game_state(game_id, rounds.next_round_updates,
                              action='next_round', require_started=True)
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/add-time', methods=['POST'])
@login_required
def add_time(game_id):
    _get_game(game_id)
    data = request.get_json(silent=True) or {}
    minutes = data.get('minutes', current_app.config.get('ADD_TIME_MINUTES', 1))
    state = mutate_game_state(game_id, lambda cfg, st: rounds.add_time_updates(st, minutes),
                              action='add_time', require_started=True)
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/pause', methods=['POST'])
@login_required
def pause_timer(game_id):
    _get_game(game_id)
    mutate_game_state(game_id, lambda cfg, st: {'is_running': False},
                      action='pause_timer', require_started=True)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/resume', methods=['POST'])
@login_required
def resume_timer(game_id):
    _get_game(game_id)

    def compute(cfg, st):
        if st.get('game_ended'):
            raise GameError('Game has ended', status=409)
        return {'is_running': True}

    state = mutate_game_state(game_id, compute,
                              action='resume_timer', require_started=True)
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/reset-timer', methods=['POST'])
@login_required
def reset_timer(game_id):
    _get_game(game_id)
    state = mutate_game_state(game_id, rounds.reset_timer_updates,
                              action='reset_timer', require_started=True)
    _start_timer_if_running(game_id, state)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/end', methods=['POST'])
@login_required
def end_game(game_id):
    _get_game(game_id)
    mutate_game_state(game_id, lambda cfg, st: rounds.end_updates(),
                      action='end', require_started=True)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/team-quiz/toggle', methods=['POST'])
@login_required
def toggle_team_quiz(game_id):
    _get_game(game_id)
    mutate_game_state(game_id, lambda cfg, st: rounds.toggle(st, 'team_quiz_unlocked'),
                      action='toggle_team_quiz', require_started=True)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/individual-quiz/toggle', methods=['POST'])
@login_required
def toggle_individual_quiz(game_id):
    _get_game(game_id)
    mutate_game_state(game_id, lambda cfg, st: rounds.toggle(st, 'individual_quiz_unlocked'),
                      action='toggle_individual_quiz', require_started=True)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/scores/toggle', methods=['POST'])
@login_required
def toggle_scores(game_id):
    _get_game(game_id)
    mutate_game_state(game_id, lambda cfg, st: rounds.toggle(st, 'scores_revealed'),
                      action='toggle_scores', require_started=True)
    return _bundle_response(game_id)


@games.route('/<int:game_id>/pause-video', methods=['POST'])
@login_required
def set_pause_video(game_id):
    _get_game(game_id)
    data = request.get_json(silent=True) or {}
    update_game_state(game_id, {'pause_video_url': data.get('url')})
    return _bundle_response(game_id)
