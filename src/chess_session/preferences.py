"""Versioned player preferences stored beside the save slots."""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict
import logging

from .errors import CorruptSnapshot, ValidationError
from .models import Color
from .models.snapshot import now_ms

logger = logging.getLogger(__name__)

PREFERENCES_KEY = 'preferences'
PREFERENCES_VERSION = '1.0.0'
TIMER_MODES = ('count-up', 'count-down')


@dataclass(frozen=True)
class Preferences:
    player_name: str = 'Player 1'
    player_color: str = Color.WHITE.value
    enable_undo: bool = True
    enable_hints: bool = True
    enable_chat: bool = True
    enable_timer: bool = True
    timer_mode: str = 'count-up'
    time_limit: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_PREFERENCES = Preferences()


def _check_bool(value: Any) -> bool:
    return isinstance(value, bool)


_VALIDATORS = {
    'player_name': lambda v: isinstance(v, str) and len(v) > 0,
    'player_color': lambda v: isinstance(v, str) and Color.parse(v) is not None,
    'enable_undo': _check_bool,
    'enable_hints': _check_bool,
    'enable_chat': _check_bool,
    'enable_timer': _check_bool,
    'timer_mode': lambda v: v in TIMER_MODES,
    'time_limit': lambda v: isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0,
}


def validate_preferences(data: Any) -> Preferences:
    """
    Decode a stored preferences record.

    Fields missing from the record take their default value; a version
    mismatch or a field of the wrong type rejects the whole record.

    Raises:
        CorruptSnapshot: if the record fails validation
    """
    if not isinstance(data, dict):
        raise CorruptSnapshot('Preferences must be an object')
    if data.get('version') != PREFERENCES_VERSION:
        raise CorruptSnapshot(
            f"Preferences version mismatch. Expected {PREFERENCES_VERSION}, got {data.get('version')!r}"
        )
    config = data.get('config')
    if not isinstance(config, dict):
        raise CorruptSnapshot('Preferences config must be an object')

    values = {}
    for name, check in _VALIDATORS.items():
        if name not in config:
            continue
        if not check(config[name]):
            raise CorruptSnapshot(f'Invalid preference {name}: {config[name]!r}')
        values[name] = config[name]
    if 'player_color' in values:
        values['player_color'] = Color.parse(values['player_color']).value
    return replace(DEFAULT_PREFERENCES, **values)


class PreferencesStore:
    """Reads and writes the preferences record for one namespace."""

    def __init__(self, backend, namespace: str = 'default'):
        self.backend = backend
        self.namespace = namespace

    def load(self) -> Preferences:
        raw = self.backend.get(self.namespace, PREFERENCES_KEY)
        if raw is None:
            return DEFAULT_PREFERENCES
        try:
            return validate_preferences(raw)
        except CorruptSnapshot as exc:
            logger.warning('Falling back to default preferences: %s', exc)
            return DEFAULT_PREFERENCES

    def save(self, preferences: Preferences) -> Preferences:
        self.backend.set(self.namespace, PREFERENCES_KEY, {
            'version': PREFERENCES_VERSION,
            'config': preferences.to_dict(),
            'timestamp': now_ms(),
        })
        return preferences

    def update(self, changes: Dict[str, Any]) -> Preferences:
        """Validate ``changes`` against the current record and persist them."""
        merged = dict(self.load().to_dict())
        merged.update(changes or {})
        try:
            preferences = validate_preferences({'version': PREFERENCES_VERSION, 'config': merged})
        except CorruptSnapshot as exc:
            raise ValidationError(str(exc)) from exc
        return self.save(preferences)

    def reset(self) -> None:
        self.backend.delete(self.namespace, PREFERENCES_KEY)
