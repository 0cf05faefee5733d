# app/storage.py
import json
import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from . import config
from .llm import AUTO
from .models import ChatMessage, Notice


logger = logging.getLogger(__name__)

GREETING = "Hi! I'm here to help you find AI tools and resources. Ask me anything!"


class CredentialStore:
    """Durable storage for the user's own OpenRouter key.

    The key lives in a small JSON file under a single entry. It is read
    when a session starts and written only by :meth:`save` and
    :meth:`clear`.
    """

    def __init__(self, path: Path = config.CREDENTIAL_FILE, key: str = config.CREDENTIAL_KEY):
        self.path = path
        self.key = key
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self.path, exc)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load(self) -> Optional[str]:
        with self._lock:
            return self._read().get(self.key) or None

    def save(self, api_key: str) -> str:
        api_key = (api_key or "").strip()
        if not api_key:
            raise ValueError("Please enter a valid API key.")
        with self._lock:
            data = self._read()
            data[self.key] = api_key
            self._write(data)
        return api_key

    def clear(self) -> None:
        with self._lock:
            data = self._read()
            if data.pop(self.key, None) is not None:
                self._write(data)


@dataclass
class Session:
    """State of one chat widget: transcript, model choice, credential, retry counter."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    messages: List[ChatMessage] = field(
        default_factory=lambda: [ChatMessage(role="assistant", content=GREETING)]
    )
    model_preference: str = AUTO
    credential: Optional[str] = None
    retry_count: int = 0
    busy: bool = False
    notices: List[Notice] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def try_acquire(self) -> bool:
        with self.lock:
            if self.busy:
                return False
            self.busy = True
            return True

    def release(self) -> None:
        with self.lock:
            self.busy = False


class SessionRegistry:
    """In-memory sessions, least recently used first.

    A session is dropped when it has been idle for ``idle_seconds`` or when
    ``max_sessions`` is exceeded. Its transcript goes with it.
    """

    def __init__(
        self,
        max_sessions: int = config.MAX_SESSIONS,
        idle_seconds: float = config.SESSION_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self._clock = clock

    def _drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_used.pop(session_id, None)

    def _expire(self, now: float) -> None:
        while self._sessions:
            oldest = next(iter(self._sessions))
            if now - self._last_used[oldest] < self.idle_seconds:
                break
            logger.info("Dropping idle session %s", oldest)
            self._drop(oldest)

    def _touch(self, session_id: str, now: float) -> None:
        self._sessions.move_to_end(session_id)
        self._last_used[session_id] = now

    def create(self, credential: Optional[str] = None) -> Session:
        session = Session(credential=credential)
        with self._lock:
            now = self._clock()
            self._expire(now)
            self._sessions[session.id] = session
            self._touch(session.id, now)
            while len(self._sessions) > self.max_sessions:
                oldest = next(iter(self._sessions))
                logger.info("Session limit reached, dropping %s", oldest)
                self._drop(oldest)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            now = self._clock()
            self._expire(now)
            session = self._sessions.get(session_id)
            if session is not None:
                self._touch(session_id, now)
            return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            found = session_id in self._sessions
            self._drop(session_id)
            return found

    def all(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


CREDENTIALS = CredentialStore()
SESSIONS = SessionRegistry()
