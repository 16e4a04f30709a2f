"""
Local session store.

Device-local choices (agent, voice, studio, resumable session id) and the
last extracted video preferences live in one JSON file. Writes replace the
file atomically; concurrent writers are last-write-wins.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from impression_studio.config import get_settings
from impression_studio.orchestrator.schemas import SessionConfig, VideoPreferences

logger = logging.getLogger(__name__)

_CONFIG_KEY = "session"
_PREFERENCES_KEY = "video_preferences"


class LocalSessionStore:
    """JSON-file backed store for SessionConfig and VideoPreferences."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or get_settings().session_store_path).expanduser()

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable session store at {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def load(self) -> SessionConfig:
        """Load the stored config, or defaults when none is stored."""
        stored = self._read().get(_CONFIG_KEY)
        if not isinstance(stored, dict):
            return SessionConfig()
        try:
            return SessionConfig.model_validate(stored)
        except ValidationError as e:
            logger.warning(f"Stored session config is invalid, using defaults: {e}")
            return SessionConfig()

    def save(self, config: SessionConfig) -> None:
        data = self._read()
        data[_CONFIG_KEY] = config.model_dump(mode="json")
        self._write(data)

    def load_preferences(self) -> VideoPreferences | None:
        stored = self._read().get(_PREFERENCES_KEY)
        if not isinstance(stored, dict):
            return None
        try:
            return VideoPreferences.model_validate(stored)
        except ValidationError:
            return None

    def save_preferences(self, preferences: VideoPreferences) -> None:
        data = self._read()
        data[_PREFERENCES_KEY] = preferences.model_dump(mode="json")
        self._write(data)

    def clear_session(self) -> SessionConfig:
        """Start a new recording: forget the resumable session id."""
        config = self.load().model_copy(update={"resume_session_id": None})
        self.save(config)
        return config
