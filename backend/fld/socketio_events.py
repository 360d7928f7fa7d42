from flask_socketio import join_room, leave_room, emit
from fld.models import Game
from fld.services.games.sync import load_bundle, room_for


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _resolve_game(data):
    data = data or {}
    game_id = data.get('game_id')
    game_code = data.get('game_code')
    if game_id is not None:
        try:
            return Game.query.filter_by(id=int(game_id)).first()
        except (TypeError, ValueError):
            return None
    if game_code:
        return Game.query.filter_by(code=str(game_code).strip().upper()).first()
    return None


def handle_join_game(data):
    """Subscribe this socket to a game's change notifications.

    The client gets ``joined`` and an initial ``state`` snapshot, then a
    ``state_update`` whenever the game's state or submissions change.
    """
    if not (data or {}).get('game_id') and not (data or {}).get('game_code'):
        emit('error', {'message': 'game_id or game_code is required'})
        return
    game = _resolve_game(data)
    if not game:
        emit('error', {'message': 'Game not found'})
        return
    room = room_for(game.id)
    join_room(room)
    emit('joined', {'room': room, 'game_id': game.id, 'code': game.code})
    emit('state', load_bundle(game.id, for_players=True))


def handle_leave_game(data):
    game = _resolve_game(data)
    if not game:
        emit('error', {'message': 'Game not found'})
        return
    room = room_for(game.id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from fld import socketio

    # Primary namespace
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_game', handle_join_game, namespace='/ws')
    socketio.on_event('leave_game', handle_leave_game, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_game', handle_join_game, namespace='/')
        socketio.on_event('leave_game', handle_leave_game, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
