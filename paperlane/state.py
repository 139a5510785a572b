"""Persisted UI state and the theme/motion store.

Storage is a flat string key-value store (browser local storage, or the
sqlite-backed ``StateDB``). Reads never raise: absent or corrupt values fall
back to defaults.
"""

import json
import logging
from collections.abc import Callable
from typing import Protocol

from paperlane.config import StorageConfig
from paperlane.models import PersistedState, Theme

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class LocalState:
    """Typed, fault-tolerant view over the three persisted keys."""

    def __init__(self, storage: Storage, config: StorageConfig | None = None) -> None:
        self.storage = storage
        self.keys = config or StorageConfig()

    def _read(self, key: str) -> str | None:
        try:
            return self.storage.get_item(key)
        except Exception:
            logger.warning("Storage read failed for %s", key, exc_info=True)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self.storage.set_item(key, value)
        except Exception:
            logger.warning("Storage write failed for %s", key, exc_info=True)

    def read_theme(self) -> Theme | None:
        raw = self._read(self.keys.theme_key)
        if raw in (Theme.LIGHT.value, Theme.DARK.value):
            return Theme(raw)
        if raw is not None:
            logger.debug("Ignoring corrupt theme value %r", raw)
        return None

    def write_theme(self, theme: Theme) -> None:
        self._write(self.keys.theme_key, theme.value)

    def read_motion(self) -> bool | None:
        raw = self._read(self.keys.motion_key)
        if raw == "on":
            return True
        if raw == "off":
            return False
        if raw is not None:
            logger.debug("Ignoring corrupt motion value %r", raw)
        return None

    def write_motion(self, motion: bool) -> None:
        self._write(self.keys.motion_key, "on" if motion else "off")

    def read_collapsed(self) -> set[str]:
        raw = self._read(self.keys.collapsed_key)
        if raw is None:
            return set()
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Ignoring corrupt collapsed-section list %r", raw)
            return set()
        if not isinstance(data, list):
            return set()
        return {x for x in data if isinstance(x, str)}

    def write_collapsed(self, ids: set[str]) -> None:
        self._write(self.keys.collapsed_key, json.dumps(sorted(ids)))

    def load(self, prefers_reduced_motion: bool = False) -> PersistedState:
        """Read everything once, substituting defaults for anything unusable."""
        motion = self.read_motion()
        return PersistedState(
            theme=self.read_theme() or Theme.LIGHT,
            motion=(not prefers_reduced_motion) if motion is None else motion,
            collapsed_section_ids=self.read_collapsed(),
        )


Listener = Callable[["ThemeMotionStore", str], None]


class ThemeMotionStore:
    """Process-wide theme and motion state with synchronous fan-out.

    Only ``set_theme``/``toggle_theme`` and ``set_motion``/``toggle_motion``
    write. Each write persists first, then notifies every subscriber before
    returning, so no subscriber observes a half-applied change.
    """

    def __init__(self, local: LocalState, prefers_reduced_motion: bool = False) -> None:
        self.local = local
        self.prefers_reduced_motion = prefers_reduced_motion
        initial = local.load(prefers_reduced_motion)
        self.theme: Theme = initial.theme
        self.motion: bool = initial.motion
        self._listeners: list[Listener] = []

    @property
    def animate(self) -> bool:
        """Whether animation should actually run right now."""
        return self.motion and not self.prefers_reduced_motion

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, what: str) -> None:
        for listener in list(self._listeners):
            listener(self, what)

    def set_theme(self, theme: Theme | str | None = None) -> Theme:
        if theme is None:
            theme = Theme.LIGHT if self.theme == Theme.DARK else Theme.DARK
        self.theme = Theme(theme)
        self.local.write_theme(self.theme)
        logger.debug("Theme -> %s", self.theme.value)
        self._notify("theme")
        return self.theme

    def toggle_theme(self) -> Theme:
        return self.set_theme()

    def set_motion(self, motion: bool | None = None) -> bool:
        self.motion = (not self.motion) if motion is None else bool(motion)
        self.local.write_motion(self.motion)
        logger.debug("Motion -> %s", "on" if self.motion else "off")
        self._notify("motion")
        return self.motion

    def toggle_motion(self) -> bool:
        return self.set_motion()
