from conftest import GAME_CONFIG, INDIVIDUAL_QUIZ, TEAM_QUIZ


def test_master_routes_require_login(client):
    res = client.post('/api/games/create', json={'name': 'Nope'})
    assert res.status_code == 401
    assert 'error' in res.get_json()


def test_login_logout_cycle(client, master_client):
    assert master_client.get('/auth/me').get_json()['username'] == 'sherlock'
    assert master_client.post('/auth/logout').status_code == 200
    assert master_client.get('/auth/me').status_code == 401
    res = client.post('/auth/login', json={'username': 'sherlock', 'password': 'wrong'})
    assert res.status_code == 401
    res = client.post('/auth/login', json={'username': 'sherlock', 'password': 'baker-street'})
    assert res.status_code == 200


def test_create_game(master_client):
    res = master_client.post('/api/games/create', json={'name': 'Night Hunt'})
    assert res.status_code == 201
    data = res.get_json()
    assert data['code'].startswith('FLD-')
    assert len(data['code']) == 10
    assert data['config']['gameName'] == 'Night Hunt'
    assert data['branding']['companyName'] == 'FUN LOVING DETECTIVES'
    assert data['join_url'] == f"http://play.test/play?code={data['code']}"

    bundle = master_client.get(f"/api/games/{data['id']}/bundle").get_json()
    assert bundle['team_quiz'] == [] and bundle['individual_quiz'] == []
    assert bundle['game_state'] is None


def test_create_game_requires_name(master_client):
    assert master_client.post('/api/games/create', json={}).status_code == 400


def test_list_and_delete_games(master_client, game):
    other = master_client.post('/api/games/create', json={'name': 'Second'}).get_json()
    listed = master_client.get('/api/games/').get_json()
    assert [g['id'] for g in listed] == [other['id'], game['id']]

    assert master_client.delete(f"/api/games/{other['id']}").status_code == 200
    assert master_client.get(f"/api/games/{other['id']}").status_code == 404
    assert len(master_client.get('/api/games/').get_json()) == 1


def test_save_setup_and_lookup_by_code(master_client, game):
    assert game['name'] == 'Harbour Mystery'
    assert game['config']['routes']['team2'] == ['2', '3', '4', '1']
    assert game['individual_quiz_urls']['team1'] == f"http://play.test/individual-quiz?game={game['id']}&team=team1"

    found = master_client.get(f"/api/games/by-code/{game['code'].lower()}").get_json()
    assert found['id'] == game['id']


def test_save_rejects_invalid_config_without_changes(master_client, game):
    res = master_client.put(f"/api/games/{game['id']}", json={
        'name': 'Renamed',
        'config': {'stations': [{'id': '1', 'type': 'dance'}]},
    })
    assert res.status_code == 400
    assert master_client.get(f"/api/games/{game['id']}").get_json()['name'] == 'Harbour Mystery'


def test_save_rejects_break_after_last_station(master_client, game):
    res = master_client.put(f"/api/games/{game['id']}", json={
        'config': dict(GAME_CONFIG, pauseAfterRound=4),
    })
    assert res.status_code == 400
    assert 'pauseAfterRound' in res.get_json()['error']
    assert master_client.get(f"/api/games/{game['id']}").get_json()['config']['pauseAfterRound'] == 2


def test_generate_stations_and_teams(master_client):
    created = master_client.post('/api/games/create', json={'name': 'Gen'}).get_json()
    gid = created['id']
    data = master_client.post(f'/api/games/{gid}/setup/stations', json={'numStations': 4}).get_json()
    assert len(data['config']['stations']) == 4
    assert data['config']['pauseAfterRound'] == 2
    data = master_client.post(f'/api/games/{gid}/setup/teams', json={'numTeams': 3}).get_json()
    assert [t['id'] for t in data['config']['teams']] == ['team1', 'team2', 'team3']
    assert data['config']['routes']['team3'] == ['3', '4', '1', '2']


def test_save_quiz(master_client, game):
    res = master_client.put(f"/api/games/{game['id']}/quizzes/team", json={'questions': [
        {'id': 'x', 'question': 'Colour of the sky?', 'correctAnswer': 'Blue'},
    ]})
    assert res.status_code == 200
    bundle = master_client.get(f"/api/games/{game['id']}/bundle").get_json()
    assert [q['id'] for q in bundle['team_quiz']] == ['x']
    assert master_client.put(f"/api/games/{game['id']}/quizzes/bogus", json={'questions': []}).status_code == 404


def test_export_and_import_round_trip(master_client, game):
    exported = master_client.get(f"/api/games/{game['id']}/export").get_json()
    assert [q['id'] for q in exported['gameConfig']['individualQuiz']] == ['i1', 'i2']

    res = master_client.post('/api/games/import', json=exported)
    assert res.status_code == 201
    copy = res.get_json()
    assert copy['id'] != game['id']
    assert copy['code'] != game['code']
    assert copy['config']['stations'] == game['config']['stations']
    assert copy['config']['teams'] == game['config']['teams']
    assert copy['config']['routes'] == game['config']['routes']

    original = master_client.get(f"/api/games/{game['id']}/bundle").get_json()
    imported = master_client.get(f"/api/games/{copy['id']}/bundle").get_json()
    assert imported['team_quiz'] == original['team_quiz']
    assert imported['individual_quiz'] == original['individual_quiz']


def test_quiz_lists_saved_inside_config_survive_export_and_import(master_client):
    created = master_client.post('/api/games/create', json={'name': 'Embedded'}).get_json()
    config = dict(GAME_CONFIG, teamQuiz=TEAM_QUIZ, individualQuiz=INDIVIDUAL_QUIZ)
    saved = master_client.put(f"/api/games/{created['id']}", json={'config': config}).get_json()
    assert 'teamQuiz' not in saved['config']
    assert 'individualQuiz' not in saved['config']

    bundle = master_client.get(f"/api/games/{created['id']}/bundle").get_json()
    assert [q['id'] for q in bundle['team_quiz']] == ['q1', 'q2']
    assert [q['id'] for q in bundle['individual_quiz']] == ['i1', 'i2']

    exported = master_client.get(f"/api/games/{created['id']}/export").get_json()
    assert [q['id'] for q in exported['gameConfig']['teamQuiz']] == ['q1', 'q2']
    assert [q['id'] for q in exported['gameConfig']['individualQuiz']] == ['i1', 'i2']

    copy = master_client.post('/api/games/import', json=exported).get_json()
    imported = master_client.get(f"/api/games/{copy['id']}/bundle").get_json()
    assert imported['team_quiz'] == bundle['team_quiz']
    assert imported['individual_quiz'] == bundle['individual_quiz']


def test_explicit_quiz_lists_win_over_embedded_ones(master_client, game):
    config = dict(GAME_CONFIG, teamQuiz=[{'id': 'x', 'question': 'Old?', 'correctAnswer': 'old'}])
    master_client.put(f"/api/games/{game['id']}", json={'config': config, 'team_quiz': TEAM_QUIZ})
    bundle = master_client.get(f"/api/games/{game['id']}/bundle").get_json()
    assert [q['id'] for q in bundle['team_quiz']] == ['q1', 'q2']


def test_start_requires_teams_and_stations(master_client):
    created = master_client.post('/api/games/create', json={'name': 'Empty'}).get_json()
    assert master_client.post(f"/api/games/{created['id']}/start").status_code == 400


def test_start_creates_state_and_empty_team_submissions(master_client, game):
    bundle = master_client.post(f"/api/games/{game['id']}/start").get_json()
    state = bundle['game_state']
    assert state['is_running'] is True
    assert state['current_round'] == 0
    assert state['time_remaining'] == 600
    assert state['is_paused'] is False
    assert set(bundle['team_submissions']) == {'team1', 'team2'}
    assert all(not s['submitted'] and s['score'] == 0 for s in bundle['team_submissions'].values())
    assert bundle['rounds']['total_rounds'] == 5
    assert bundle['rounds']['time_display'] == '10:00'
    positions = {p['team_id']: p['station_id'] for p in bundle['positions']}
    assert positions == {'team1': '1', 'team2': '2'}


def test_round_flow_through_the_break(master_client, started_game):
    gid = started_game['id']
    bundle = master_client.post(f'/api/games/{gid}/next-round').get_json()
    assert bundle['game_state']['current_round'] == 1
    assert bundle['game_state']['time_remaining'] == 600

    bundle = master_client.post(f'/api/games/{gid}/next-round').get_json()
    assert bundle['game_state']['current_round'] == 2
    assert bundle['game_state']['is_paused'] is True
    assert bundle['game_state']['time_remaining'] == 300
    assert bundle['rounds']['is_pause_round'] is True
    assert all(p['station_id'] is None for p in bundle['positions'])

    bundle = master_client.post(f'/api/games/{gid}/next-round').get_json()
    assert bundle['game_state']['current_round'] == 3
    assert bundle['game_state']['is_paused'] is False
    assert bundle['game_state']['time_remaining'] == 600
    positions = {p['team_id']: p['station_id'] for p in bundle['positions']}
    assert positions == {'team1': '3', 'team2': '4'}


def test_next_round_at_last_round_leaves_state_unchanged(master_client, started_game):
    gid = started_game['id']
    for _ in range(4):
        assert master_client.post(f'/api/games/{gid}/next-round').status_code == 200
    before = master_client.get(f'/api/games/{gid}/bundle').get_json()['game_state']
    assert before['current_round'] == 4

    res = master_client.post(f'/api/games/{gid}/next-round')
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Last round reached'
    after = master_client.get(f'/api/games/{gid}/bundle').get_json()['game_state']
    assert after == before


def test_timer_controls(master_client, started_game):
    gid = started_game['id']
    state = master_client.post(f'/api/games/{gid}/add-time', json={'minutes': 2}).get_json()['game_state']
    assert state['time_remaining'] == 720
    state = master_client.post(f'/api/games/{gid}/add-time').get_json()['game_state']
    assert state['time_remaining'] == 780
    assert master_client.post(f'/api/games/{gid}/add-time', json={'minutes': -3}).status_code == 400

    state = master_client.post(f'/api/games/{gid}/pause').get_json()['game_state']
    assert state['is_running'] is False
    state = master_client.post(f'/api/games/{gid}/reset-timer').get_json()['game_state']
    assert state['time_remaining'] == 600
    state = master_client.post(f'/api/games/{gid}/resume').get_json()['game_state']
    assert state['is_running'] is True


def test_toggles_and_end(master_client, started_game):
    gid = started_game['id']
    state = master_client.post(f'/api/games/{gid}/team-quiz/toggle').get_json()['game_state']
    assert state['team_quiz_unlocked'] is True
    state = master_client.post(f'/api/games/{gid}/team-quiz/toggle').get_json()['game_state']
    assert state['team_quiz_unlocked'] is False
    state = master_client.post(f'/api/games/{gid}/individual-quiz/toggle').get_json()['game_state']
    assert state['individual_quiz_unlocked'] is True
    state = master_client.post(f'/api/games/{gid}/scores/toggle').get_json()['game_state']
    assert state['scores_revealed'] is True
    state = master_client.post(f'/api/games/{gid}/pause-video', json={'url': 'https://video.test/break.mp4'}).get_json()['game_state']
    assert state['pause_video_url'] == 'https://video.test/break.mp4'

    state = master_client.post(f'/api/games/{gid}/end').get_json()['game_state']
    assert state['game_ended'] is True
    assert state['is_running'] is False
    assert master_client.post(f'/api/games/{gid}/resume').status_code == 409


def test_patch_state_merges_partial_update(master_client, started_game):
    gid = started_game['id']
    bundle = master_client.patch(f'/api/games/{gid}/state', json={'time_remaining': 42}).get_json()
    state = bundle['game_state']
    assert state['time_remaining'] == 42
    assert state['is_running'] is True
    assert state['current_round'] == 0

    assert master_client.patch(f'/api/games/{gid}/state', json={'score': 100}).status_code == 400
    assert master_client.patch(f'/api/games/{gid}/state', json={'is_running': 'yes'}).status_code == 400


def test_round_actions_need_a_started_game(master_client, game):
    gid = game['id']
    for action in ('next-round', 'add-time', 'pause', 'resume', 'reset-timer', 'end',
                   'team-quiz/toggle', 'individual-quiz/toggle', 'scores/toggle'):
        res = master_client.post(f'/api/games/{gid}/{action}')
        assert res.status_code == 409, action
        assert res.get_json()['error'] == 'Game has not started'
    assert master_client.get(f'/api/games/{gid}/bundle').get_json()['game_state'] is None


def test_patch_state_creates_missing_row(master_client, game):
    bundle = master_client.patch(f"/api/games/{game['id']}/state", json={'scores_revealed': True}).get_json()
    assert bundle['game_state']['scores_revealed'] is True
    assert bundle['game_state']['current_round'] == 0


def test_leaderboard_for_master(master_client, client, started_game):
    gid = started_game['id']
    master_client.post(f'/api/games/{gid}/team-quiz/toggle')
    client.post(f"/api/play/{started_game['code']}/teams/team1/quiz", json={'answers': {'q1': 'amsterdam', 'q2': '4'}})

    board = master_client.get(f'/api/games/{gid}/leaderboard').get_json()
    teams = {row['team_id']: row for row in board['teams']}
    assert teams['team1']['total'] == 3
    assert teams['team2']['total'] == GAME_CONFIG['teams'][1]['score']
    assert [row['team_id'] for row in board['teams']] == ['team2', 'team1']


def test_unknown_game_is_json_404(master_client):
    res = master_client.post('/api/games/999/start')
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Game not found'
