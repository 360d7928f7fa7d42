import os
import sys
import pytest

# Ensure the backend root (containing the `fld` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from fld import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ['http://localhost:5173']
    PLAYER_BASE_URL = 'http://play.test'
    GAME_CODE_PREFIX = 'FLD-'
    ADD_TIME_MINUTES = 1
    TIMER_TICK_SEC = 1
    TIMER_HEARTBEAT_SEC = 0
    LEADERBOARD_INDIVIDUAL_LIMIT = 10


GAME_CONFIG = {
    'gameName': 'Harbour Mystery',
    'numStations': 4,
    'numTeams': 2,
    'stationDuration': 10,
    'pauseDuration': 5,
    'pauseAfterRound': 2,
    'stations': [
        {'id': '1', 'name': 'Library', 'type': 'manned'},
        {'id': '2', 'name': 'Docks', 'type': 'task', 'taskAnswer': 'Anchor'},
        {'id': '3', 'name': 'Lighthouse', 'type': 'manned', 'location': 'North pier'},
        {'id': '4', 'name': 'Fish market', 'type': 'task', 'taskAnswer': 'Herring'},
    ],
    'teams': [
        {'id': 'team1', 'name': 'Team 1', 'captain': 'Ada', 'members': ['Ada', 'Bo'], 'color': '#FFB800'},
        {'id': 'team2', 'name': 'Team 2', 'captain': 'Cy', 'members': ['Cy'], 'color': '#FF6B6B', 'score': 5},
    ],
    'routes': {
        'team1': ['1', '2', '3', '4'],
        'team2': ['2', '3', '4', '1'],
    },
}

TEAM_QUIZ = [
    {'id': 'q1', 'question': 'Capital of the Netherlands?', 'type': 'open', 'correctAnswer': 'Amsterdam', 'points': 2},
    {'id': 'q2', 'question': '2 + 2?', 'type': 'multiple-choice', 'options': ['3', '4'], 'correctAnswer': '4', 'points': 1},
]

INDIVIDUAL_QUIZ = [
    {'id': 'i1', 'question': 'Famous detective?', 'type': 'open', 'correctAnswer': 'Sherlock', 'points': 3},
    {'id': 'i2', 'question': 'His friend?', 'type': 'multiple-choice', 'options': ['Watson', 'Moriarty'], 'correctAnswer': 'Watson', 'points': 1},
]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import fld.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def master_client(flask_app):
    """A test client logged in as a game master."""
    test_client = flask_app.test_client()
    res = test_client.post('/auth/register', json={'username': 'sherlock', 'password': 'baker-street'})
    assert res.status_code == 201
    return test_client


@pytest.fixture()
def game(master_client):
    """A fully configured game: 4 stations, break after round 2, 2 teams, both quizzes."""
    created = master_client.post('/api/games/create', json={'name': 'Harbour Mystery'}).get_json()
    res = master_client.put(f"/api/games/{created['id']}", json={
        'config': GAME_CONFIG,
        'team_quiz': TEAM_QUIZ,
        'individual_quiz': INDIVIDUAL_QUIZ,
    })
    assert res.status_code == 200
    return res.get_json()


@pytest.fixture()
def started_game(master_client, game):
    res = master_client.post(f"/api/games/{game['id']}/start")
    assert res.status_code == 200
    return game


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
