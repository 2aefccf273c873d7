"""Durable client state (tokens, user, theme) and the application context.

The context is created once at start-up with :meth:`AppContext.hydrate`
and handed to whatever needs it; nothing reads the session file directly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .config import SESSION_PATH

logger = logging.getLogger(__name__)

THEMES = ('dark', 'light')
DEFAULT_SESSION: Dict[str, Any] = {
    'access_token': None,
    'refresh_token': None,
    'user': None,
    'theme': 'dark',
}


def load_session(path: Optional[Path] = None) -> Dict[str, Any]:
    target = path or SESSION_PATH
    if not target.exists():
        return DEFAULT_SESSION.copy()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable session file %s: %s", target, exc)
        return DEFAULT_SESSION.copy()
    if not isinstance(data, dict):
        return DEFAULT_SESSION.copy()
    merged = DEFAULT_SESSION.copy()
    merged.update({k: v for k, v in data.items() if k in DEFAULT_SESSION})
    if merged['theme'] not in THEMES:
        merged['theme'] = DEFAULT_SESSION['theme']
    return merged


def save_session(session: Dict[str, Any], path: Optional[Path] = None) -> None:
    target = path or SESSION_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open('w', encoding='utf-8') as handle:
        json.dump(session, handle, indent=2, sort_keys=True)


@dataclass
class AppContext:
    """Session and preferences for one running client."""

    path: Path = SESSION_PATH
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    theme: str = 'dark'
    _listeners: list = field(default_factory=list, repr=False)

    @classmethod
    def hydrate(cls, path: Optional[Path] = None) -> 'AppContext':
        target = path or SESSION_PATH
        stored = load_session(target)
        return cls(
            path=target,
            access_token=stored['access_token'],
            refresh_token=stored['refresh_token'],
            user=stored['user'],
            theme=stored['theme'],
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user)

    @property
    def is_dark_mode(self) -> bool:
        return self.theme == 'dark'

    def login(self, payload: Dict[str, Any]) -> None:
        """Store the tokens and user returned by the login endpoint."""
        self.access_token = payload.get('accessToken')
        self.refresh_token = payload.get('refreshToken')
        self.user = {k: v for k, v in payload.items() if k not in {'accessToken', 'refreshToken'}}
        self.persist()

    def update_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        self.persist()

    def teardown(self) -> None:
        """Forget tokens and user; the theme preference survives."""
        self.access_token = None
        self.refresh_token = None
        self.user = None
        self.persist()
        for listener in list(self._listeners):
            listener()

    def on_teardown(self, callback) -> None:
        self._listeners.append(callback)

    def toggle_theme(self) -> str:
        self.theme = 'light' if self.theme == 'dark' else 'dark'
        self.persist()
        return self.theme

    def persist(self) -> None:
        save_session({
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'user': self.user,
            'theme': self.theme,
        }, self.path)
