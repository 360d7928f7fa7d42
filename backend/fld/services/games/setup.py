"""Game setup: defaults, validation of the config/branding/quiz blobs,
station/team/route generation and JSON export/import.

The blobs keep the camelCase keys of the browser client so that exported
files can be loaded back by either side.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import ConfigError

TEAM_COLORS = ['#FFB800', '#FF6B6B', '#4ECDC4', '#95E1D3', '#F38181']
STATION_TYPES = ('manned', 'task')
QUESTION_TYPES = ('open', 'multiple-choice')

DEFAULT_BRANDING = {
    'logoUrl': '',
    'companyName': 'FUN LOVING DETECTIVES',
    'primaryColor': '#FFB800',
    'secondaryColor': '#000000',
    'headerFont': 'system-ui',
    'bodyFont': 'Inter, -apple-system, BlinkMacSystemFont, "Segoe UI", system-ui, sans-serif',
    'customFontUrl': '',
    'customFontName': '',
}

DEFAULT_CONFIG = {
    'gameName': '',
    'numTeams': 2,
    'numStations': 0,
    'stationDuration': 15,
    'pauseDuration': 5,
    'pauseAfterRound': 1,
    'teams': [],
    'stations': [],
    'routes': {},
}


def default_config(game_name: str = '') -> Dict[str, Any]:
    config = dict(DEFAULT_CONFIG, teams=[], stations=[], routes={})
    config['gameName'] = game_name
    return config


def default_branding() -> Dict[str, Any]:
    return dict(DEFAULT_BRANDING)


def _int_field(raw: Dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = raw.get(key, default)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ConfigError(f'{key} must be an integer')
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f'{key} must be an integer')
    if value < minimum:
        raise ConfigError(f'{key} must be at least {minimum}')
    return value


def _normalize_station(raw: Any, index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigError('stations must be objects')
    station_type = raw.get('type') or 'manned'
    if station_type not in STATION_TYPES:
        raise ConfigError(f"station type must be one of {', '.join(STATION_TYPES)}")
    return {
        'id': str(raw.get('id') or index + 1),
        'name': str(raw.get('name') or f'Station {index + 1}'),
        'type': station_type,
        'taskAnswer': str(raw.get('taskAnswer') or ''),
        'location': str(raw.get('location') or ''),
        'mapUrl': str(raw.get('mapUrl') or ''),
    }


def _normalize_team(raw: Any, index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigError('teams must be objects')
    members = raw.get('members') or []
    if not isinstance(members, list):
        raise ConfigError('team members must be a list')
    try:
        score = int(raw.get('score') or 0)
    except (TypeError, ValueError):
        raise ConfigError('team score must be an integer')
    return {
        'id': str(raw.get('id') or f'team{index + 1}'),
        'name': str(raw.get('name') or f'Team {index + 1}'),
        'captain': str(raw.get('captain') or ''),
        'members': [str(m) for m in members],
        'color': str(raw.get('color') or TEAM_COLORS[index % len(TEAM_COLORS)]),
        'score': score,
    }


def normalize_config(raw: Any) -> Dict[str, Any]:
    """Validate a config blob and fill in defaults.

    Embedded ``teamQuiz``/``individualQuiz`` lists are validated and kept;
    callers that store the config split them off into the quiz tables.
    Route lengths are not checked against the station count.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError('config must be an object')

    stations = raw.get('stations') or []
    teams = raw.get('teams') or []
    routes = raw.get('routes') or {}
    if not isinstance(stations, list) or not isinstance(teams, list):
        raise ConfigError('stations and teams must be lists')
    if not isinstance(routes, dict):
        raise ConfigError('routes must be an object keyed by team id')

    config = {
        'gameName': str(raw.get('gameName') or ''),
        'numStations': _int_field(raw, 'numStations', len(stations)),
        'numTeams': _int_field(raw, 'numTeams', len(teams) or DEFAULT_CONFIG['numTeams']),
        'stationDuration': _int_field(raw, 'stationDuration', DEFAULT_CONFIG['stationDuration'], minimum=1),
        'pauseDuration': _int_field(raw, 'pauseDuration', DEFAULT_CONFIG['pauseDuration']),
        'pauseAfterRound': _int_field(raw, 'pauseAfterRound', DEFAULT_CONFIG['pauseAfterRound']),
        'stations': [_normalize_station(s, i) for i, s in enumerate(stations)],
        'teams': [_normalize_team(t, i) for i, t in enumerate(teams)],
        'routes': {},
    }
    # The break must fall between two station rounds
    if config['stations'] and config['pauseAfterRound'] >= len(config['stations']):
        if raw.get('pauseAfterRound') not in (None, ''):
            raise ConfigError('pauseAfterRound must be lower than the number of stations')
        config['pauseAfterRound'] = 0
    for team_id, route in routes.items():
        if not isinstance(route, list):
            raise ConfigError('each route must be a list of station ids')
        config['routes'][str(team_id)] = [str(s) for s in route]

    for key in ('teamQuiz', 'individualQuiz'):
        if raw.get(key) is not None:
            config[key] = normalize_questions(raw[key])
    return config


def normalize_branding(raw: Any) -> Dict[str, Any]:
    if raw is None:
        return default_branding()
    if not isinstance(raw, dict):
        raise ConfigError('branding must be an object')
    branding = default_branding()
    for key in DEFAULT_BRANDING:
        if raw.get(key) is not None:
            branding[key] = str(raw[key])
    return branding


def normalize_questions(raw: Any) -> List[Dict[str, Any]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError('questions must be a list')
    questions = []
    seen = set()
    for i, q in enumerate(raw):
        if not isinstance(q, dict):
            raise ConfigError('questions must be objects')
        qid = str(q.get('id') or f'q{i + 1}')
        if qid in seen:
            raise ConfigError(f'duplicate question id {qid}')
        seen.add(qid)
        qtype = q.get('type') or 'open'
        if qtype not in QUESTION_TYPES:
            raise ConfigError(f"question type must be one of {', '.join(QUESTION_TYPES)}")
        options = q.get('options')
        if options is not None and not isinstance(options, list):
            raise ConfigError('question options must be a list')
        try:
            points = int(q.get('points', 1))
        except (TypeError, ValueError):
            raise ConfigError('question points must be an integer')
        question = {
            'id': qid,
            'question': str(q.get('question') or ''),
            'type': qtype,
            'correctAnswer': str(q.get('correctAnswer') or ''),
            'points': points,
        }
        if options is not None:
            question['options'] = [str(o) for o in options]
        if q.get('imageUrl'):
            question['imageUrl'] = str(q['imageUrl'])
        questions.append(question)
    return questions


def public_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Questions as shown to players: without the correct answer."""
    return [{k: v for k, v in q.items() if k != 'correctAnswer'} for q in questions]


def build_stations(num_stations: int) -> List[Dict[str, Any]]:
    return [
        {
            'id': str(i + 1),
            'name': f'Station {i + 1}',
            'type': 'manned',
            'taskAnswer': '',
            'location': '',
            'mapUrl': '',
        }
        for i in range(num_stations)
    ]


def build_teams(num_teams: int, station_ids: List[str]) -> Dict[str, Any]:
    """Teams with rotated routes: team i starts at station i and walks on."""
    teams = []
    routes = {}
    for i in range(num_teams):
        team_id = f'team{i + 1}'
        teams.append({
            'id': team_id,
            'name': f'Team {i + 1}',
            'captain': '',
            'members': [],
            'color': TEAM_COLORS[i % len(TEAM_COLORS)],
            'score': 0,
        })
        routes[team_id] = [station_ids[(i + j) % len(station_ids)] for j in range(len(station_ids))] if station_ids else []
    return {'teams': teams, 'routes': routes}


def with_generated_stations(config: Dict[str, Any], num_stations: Optional[int] = None) -> Dict[str, Any]:
    config = dict(config)
    n = _int_field({'numStations': num_stations if num_stations is not None else config.get('numStations')}, 'numStations', 0)
    config['numStations'] = n
    config['stations'] = build_stations(n)
    config['pauseAfterRound'] = n // 2
    return config


def with_generated_teams(config: Dict[str, Any], num_teams: Optional[int] = None) -> Dict[str, Any]:
    config = dict(config)
    n = _int_field({'numTeams': num_teams if num_teams is not None else config.get('numTeams')}, 'numTeams', 0)
    config['numTeams'] = n
    config.update(build_teams(n, [s['id'] for s in config.get('stations') or []]))
    return config


def export_payload(config: Dict[str, Any], branding: Dict[str, Any],
                   team_quiz: List[Dict[str, Any]], individual_quiz: List[Dict[str, Any]]) -> Dict[str, Any]:
    game_config = dict(config)
    game_config['teamQuiz'] = list(team_quiz)
    game_config['individualQuiz'] = list(individual_quiz)
    return {
        'branding': branding,
        'gameConfig': game_config,
        'exportedAt': datetime.now(timezone.utc).isoformat(),
    }


def parse_import(payload: Any) -> Dict[str, Any]:
    """Split an exported document into config, branding and both quizzes."""
    if not isinstance(payload, dict) or not isinstance(payload.get('gameConfig'), dict):
        raise ConfigError('import must contain a gameConfig object')
    config = normalize_config(payload['gameConfig'])
    team_quiz = config.pop('teamQuiz', [])
    individual_quiz = config.pop('individualQuiz', [])
    return {
        'config': config,
        'branding': normalize_branding(payload.get('branding')),
        'team_quiz': team_quiz,
        'individual_quiz': individual_quiz,
    }
