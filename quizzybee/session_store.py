"""
Durable storage for the single active quiz session.
"""
import json
import logging
from pathlib import Path
from typing import Optional

from .models import QuizSession

SESSION_KEY = "quizzybee_session_v2"

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Key-value slot holding the serialized session.

    Subclasses implement the raw ``_read``/``_write``/``_delete`` operations;
    this class handles serialization and turns storage failures into logged
    warnings so persistence problems never interrupt a quiz.
    """

    def __init__(self, key: str = SESSION_KEY):
        self.key = key

    def save(self, session: QuizSession) -> bool:
        try:
            payload = json.dumps({"state": session.to_dict()}, ensure_ascii=False)
            self._write(payload)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(
                f"Could not save session: {e}",
                extra={'event_type': 'session_save_failed', 'key': self.key}
            )
            return False

    def load(self) -> Optional[QuizSession]:
        try:
            raw = self._read()
            if not raw:
                return None
            parsed = json.loads(raw)
            state = parsed.get("state") if isinstance(parsed, dict) else None
            if not state:
                return None
            return QuizSession.from_dict(state)
        except (OSError, TypeError, ValueError, KeyError) as e:
            logger.warning(
                f"Could not load session: {e}",
                extra={'event_type': 'session_load_failed', 'key': self.key}
            )
            return None

    def clear(self) -> bool:
        try:
            self._delete()
            return True
        except OSError as e:
            logger.warning(
                f"Could not clear session: {e}",
                extra={'event_type': 'session_clear_failed', 'key': self.key}
            )
            return False

    def _read(self) -> Optional[str]:
        raise NotImplementedError

    def _write(self, payload: str) -> None:
        raise NotImplementedError

    def _delete(self) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Session store backed by a plain dictionary."""

    def __init__(self, key: str = SESSION_KEY):
        super().__init__(key)
        self.slots = {}

    def _read(self) -> Optional[str]:
        return self.slots.get(self.key)

    def _write(self, payload: str) -> None:
        self.slots[self.key] = payload

    def _delete(self) -> None:
        self.slots.pop(self.key, None)


class JsonFileSessionStore(SessionStore):
    """Session store writing ``<directory>/<key>.json``."""

    def __init__(self, directory: str = "./sessions/", key: str = SESSION_KEY):
        super().__init__(key)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def _read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding='utf-8')

    def _write(self, payload: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(payload, encoding='utf-8')
        tmp_path.replace(self.path)

    def _delete(self) -> None:
        if self.path.exists():
            self.path.unlink()
