from flask import Blueprint, jsonify, request
from fld.models import Game, TeamSubmission
from fld.services.games import rounds
from fld.services.games.submissions import (
    check_station_answer,
    find_individual_submission,
    submit_individual_quiz,
    submit_team_quiz,
)
from fld.services.games.sync import load_bundle


play = Blueprint('play', __name__)


def _game_by_code(code: str) -> Game:
    return Game.query.filter_by(code=code.strip().upper()).first_or_404(
        description='Game not found. Check the game code.'
    )


def _find_team(game: Game, team_id: str):
    for team in game.config.get('teams') or []:
        if team.get('id') == team_id:
            return team
    return None


def _public_game(game: Game) -> dict:
    return {'id': game.id, 'name': game.name, 'code': game.code}


def _individual_quiz_payload(game: Game, team: dict, player_name: str = ''):
    bundle = load_bundle(game.id, for_players=True)
    state = bundle['game_state'] or {}
    unlocked = bool(state.get('individual_quiz_unlocked'))
    payload = {
        'game': _public_game(game),
        'branding': bundle['branding'],
        'team': team,
        'unlocked': unlocked,
        'questions': bundle['individual_quiz'] if unlocked else None,
        'submission': None,
    }
    name = (player_name or '').strip()
    if name:
        sub = find_individual_submission(game.id, team.get('id'), name)
        payload['submission'] = sub.to_dict() if sub else None
    return payload


@play.route('/<string:code>', methods=['GET'])
def join_game(code):
    """Join by code: everything needed to pick a team."""
    game = _game_by_code(code)
    bundle = load_bundle(game.id, for_players=True)
    return jsonify({
        'game': _public_game(game),
        'branding': bundle['branding'],
        'teams': bundle['config'].get('teams', []),
        'game_state': bundle['game_state'],
        'rounds': bundle['rounds'],
    })


@play.route('/<string:code>/teams/<string:team_id>', methods=['GET'])
def team_view(code, team_id):
    game = _game_by_code(code)
    team = _find_team(game, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404

    bundle = load_bundle(game.id, for_players=True)
    state = bundle['game_state'] or {}
    current_round = state.get('current_round') or 0
    position = next((p for p in bundle['positions'] if p['team_id'] == team_id), None)
    quiz_unlocked = bool(state.get('team_quiz_unlocked'))
    sub = TeamSubmission.query.filter_by(game_id=game.id, team_id=team_id).first()

    return jsonify({
        'game': _public_game(game),
        'branding': bundle['branding'],
        'team': team,
        'game_state': state,
        'rounds': bundle['rounds'],
        'station': position['station'] if position else None,
        'is_pause_round': rounds.is_pause_round(game.config, current_round),
        'pause_video_url': state.get('pause_video_url'),
        'game_ended': bool(state.get('game_ended')),
        'quiz_unlocked': quiz_unlocked,
        'quiz': bundle['team_quiz'] if quiz_unlocked else None,
        'submission': sub.to_dict() if sub else None,
    })


@play.route('/<string:code>/teams/<string:team_id>/quiz', methods=['POST'])
def submit_team(code, team_id):
    game = _game_by_code(code)
    data = request.get_json(silent=True) or {}
    # Any client-sent score is ignored; the server scores the raw answers.
    submission = submit_team_quiz(game, team_id, data.get('answers'))
    return jsonify(submission.to_dict()), 201


@play.route('/<string:code>/individual-quiz', methods=['GET'])
def individual_quiz_by_code(code):
    game = _game_by_code(code)
    team_id = request.args.get('team', '')
    team = _find_team(game, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404
    return jsonify(_individual_quiz_payload(game, team, request.args.get('player_name', '')))


@play.route('/quiz', methods=['GET'])
def individual_quiz_deep_link():
    """Deep link from a team's QR code: ``?game=<id>&team=<team_id>``."""
    game_id = request.args.get('game', type=int)
    team_id = request.args.get('team', '')
    if not game_id or not team_id:
        return jsonify({'error': 'game and team are required'}), 400
    game = Game.query.filter_by(id=game_id).first_or_404(description='Game not found')
    team = _find_team(game, team_id)
    if not team:
        return jsonify({'error': 'Team not found'}), 404
    return jsonify(_individual_quiz_payload(game, team, request.args.get('player_name', '')))


@play.route('/<string:code>/teams/<string:team_id>/individual', methods=['POST'])
def submit_individual(code, team_id):
    game = _game_by_code(code)
    data = request.get_json(silent=True) or {}
    submission = submit_individual_quiz(game, team_id, data.get('player_name'), data.get('answers'))
    return jsonify(submission.to_dict()), 201


@play.route('/<string:code>/teams/<string:team_id>/stations/<string:station_id>/answer', methods=['POST'])
def check_station(code, team_id, station_id):
    game = _game_by_code(code)
    data = request.get_json(silent=True) or {}
    correct = check_station_answer(game, team_id, station_id, data.get('answer'))
    return jsonify({'station_id': station_id, 'correct': correct})


@play.route('/<string:code>/scoreboard', methods=['GET'])
def scoreboard(code):
    game = _game_by_code(code)
    bundle = load_bundle(game.id, for_players=True)
    if 'leaderboard' not in bundle:
        return jsonify({'error': 'Scores have not been revealed yet'}), 403
    return jsonify(bundle['leaderboard'])
