"""Round and timer state machine.

Every function here is pure: it takes the game config blob and/or the
current state fields as plain dicts and returns the fields to change.
Persisting and broadcasting the result is the job of ``sync``.

Rounds are zero based. One round index (``pauseAfterRound``) is the
mid-game break; it consumes a round slot but no station slot, so station
lookups after the break subtract one from the round counter.
"""

from typing import Any, Dict, List, Optional

from . import RoundError

DEFAULT_STATION_MINUTES = 15
DEFAULT_PAUSE_MINUTES = 5


def _minutes(config: Dict[str, Any], key: str, default: int) -> int:
    try:
        return int(config.get(key, default))
    except (TypeError, ValueError):
        return default


def pause_index(config: Dict[str, Any]) -> Optional[int]:
    """Round index of the break, or None when the game has no break."""
    try:
        idx = int(config.get('pauseAfterRound') or 0)
    except (TypeError, ValueError):
        return None
    return idx if idx > 0 else None


def total_rounds(config: Dict[str, Any]) -> int:
    stations = config.get('stations') or []
    return len(stations) + (1 if pause_index(config) is not None else 0)


def is_pause_round(config: Dict[str, Any], round_idx: int) -> bool:
    return pause_index(config) == round_idx


def round_duration(config: Dict[str, Any], round_idx: int) -> int:
    """Length of the given round in seconds."""
    if is_pause_round(config, round_idx):
        return _minutes(config, 'pauseDuration', DEFAULT_PAUSE_MINUTES) * 60
    return _minutes(config, 'stationDuration', DEFAULT_STATION_MINUTES) * 60


def adjusted_round(config: Dict[str, Any], round_idx: int) -> int:
    idx = pause_index(config)
    if idx is not None and round_idx > idx:
        return round_idx - 1
    return round_idx


def current_station(config: Dict[str, Any], team_id: str, round_idx: int) -> Optional[str]:
    """Station id the team should be at during ``round_idx``.

    None during the break, or when the team has no route entry for the round.
    """
    if is_pause_round(config, round_idx):
        return None
    route = (config.get('routes') or {}).get(team_id) or []
    slot = adjusted_round(config, round_idx)
    if 0 <= slot < len(route):
        return route[slot]
    return None


def find_station(config: Dict[str, Any], station_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if station_id is None:
        return None
    for station in config.get('stations') or []:
        if station.get('id') == station_id:
            return station
    return None


def team_positions(config: Dict[str, Any], round_idx: int, include_answers: bool = True) -> List[Dict[str, Any]]:
    positions = []
    for team in config.get('teams') or []:
        station_id = current_station(config, team.get('id'), round_idx)
        station = find_station(config, station_id)
        if station is not None and not include_answers:
            station = {k: v for k, v in station.items() if k != 'taskAnswer'}
        positions.append({
            'team_id': team.get('id'),
            'team_name': team.get('name'),
            'color': team.get('color'),
            'station_id': station_id,
            'station': station,
        })
    return positions


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds or 0))
    return f"{seconds // 60}:{seconds % 60:02d}"


def start_updates(config: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'is_running': True,
        'current_round': 0,
        'time_remaining': round_duration(config, 0),
        'is_paused': is_pause_round(config, 0),
        'game_ended': False,
    }


def next_round_updates(config: Dict[str, Any], state: Dict[str, Any]) -> Dict[str, Any]:
    current = int(state.get('current_round') or 0)
    if current >= total_rounds(config) - 1:
        raise RoundError('Last round reached')
    nxt = current + 1
    return {
        'current_round': nxt,
        'time_remaining': round_duration(config, nxt),
        'is_paused': is_pause_round(config, nxt),
    }


def tick_updates(state: Dict[str, Any]) -> Dict[str, Any]:
    """One second of countdown; empty when the clock is not counting."""
    remaining = int(state.get('time_remaining') or 0)
    if not state.get('is_running') or state.get('game_ended') or remaining <= 0:
        return {}
    return {'time_remaining': remaining - 1}


def add_time_updates(state: Dict[str, Any], minutes: Any) -> Dict[str, Any]:
    if isinstance(minutes, bool):
        raise RoundError('minutes must be a positive integer', status=400)
    try:
        minutes = int(minutes)
    except (TypeError, ValueError):
        raise RoundError('minutes must be a positive integer', status=400)
    if minutes <= 0:
        raise RoundError('minutes must be a positive integer', status=400)
    return {'time_remaining': int(state.get('time_remaining') or 0) + minutes * 60}


def reset_timer_updates(config: Dict[str, Any], state: Dict[str, Any]) -> Dict[str, Any]:
    return {'time_remaining': round_duration(config, int(state.get('current_round') or 0))}


def end_updates() -> Dict[str, Any]:
    return {'game_ended': True, 'is_running': False}


def toggle(state: Dict[str, Any], field: str) -> Dict[str, Any]:
    return {field: not bool(state.get(field))}


def summary(config: Dict[str, Any], state: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Derived round info that every view renders next to the raw state."""
    state = state or {}
    current = int(state.get('current_round') or 0)
    total = total_rounds(config)
    return {
        'total_rounds': total,
        'pause_index': pause_index(config),
        'is_pause_round': is_pause_round(config, current),
        'is_last_round': total == 0 or current >= total - 1,
        'round_number': current + 1,
        'time_display': format_time(state.get('time_remaining') or 0),
    }
