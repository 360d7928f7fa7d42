import threading
from typing import Any, Dict, Optional, Set

from fld import socketio
from . import GameError
from . import rounds
from .sync import mutate_game_state


_running_timers: Set[int] = set()
_timers_guard = threading.Lock()


def tick_game(game_id: int) -> Dict[str, Any]:
    """Count the game's clock down by one second and persist it."""
    return mutate_game_state(game_id, lambda config, state: rounds.tick_updates(state),
                             action='tick', require_started=True)


def is_timer_running(game_id: int) -> bool:
    with _timers_guard:
        return game_id in _running_timers


def schedule_timer(app, game_id: int) -> None:
    """Start the countdown worker for a running game.

    - No-ops in TESTING mode unless ENABLE_TIMER_IN_TESTS is set
    - Ensures a single worker per game
    - The worker stops by itself once the game is paused, ended, deleted
      or the clock reaches zero
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_TIMER_IN_TESTS'):
        return

    with _timers_guard:
        if game_id in _running_timers:
            app.logger.info(f"[timer-skip] game={game_id} already running")
            return
        _running_timers.add(game_id)

    app.logger.info(f"[timer-set] game={game_id} step={app.config.get('TIMER_TICK_SEC', 1)}s")
    socketio.start_background_task(_worker, app, game_id)


def _should_stop(state: Optional[Dict[str, Any]]) -> bool:
    return (
        not state
        or not state.get('is_running')
        or state.get('game_ended')
        or int(state.get('time_remaining') or 0) <= 0
    )


def _worker(app, game_id: int) -> None:
    try:
        step = float(app.config.get('TIMER_TICK_SEC', 1))
    except (TypeError, ValueError):
        step = 1.0
    try:
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
    except (TypeError, ValueError):
        hb = 0
    elapsed = 0.0
    try:
        while True:
            socketio.sleep(step)
            elapsed += step
            with app.app_context():
                try:
                    state = tick_game(game_id)
                except GameError as exc:
                    app.logger.warning(f"[timer-abort] game={game_id} {exc.message}")
                    return
                if hb > 0 and int(elapsed) % hb == 0:
                    app.logger.info(
                        f"[timer-heartbeat] game={game_id} round={state.get('current_round')} "
                        f"remaining={rounds.format_time(state.get('time_remaining'))}"
                    )
                if _should_stop(state):
                    app.logger.info(
                        f"[timer-stop] game={game_id} running={state.get('is_running')} "
                        f"ended={state.get('game_ended')} remaining={state.get('time_remaining')}"
                    )
                    return
    finally:
        with _timers_guard:
            _running_timers.discard(game_id)
