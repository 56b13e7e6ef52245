"""
Host session providers
Resolve the current database (tenant) for the panel
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .errors import SessionUnavailable

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Host session"""

    database: str
    user_name: Optional[str] = None

    @classmethod
    def from_host(cls, raw: Any) -> "Session":
        """
        Build a Session from whatever the host hands back (dict or object)

        Raises:
            SessionUnavailable: no database in the payload
        """
        if isinstance(raw, Session):
            return raw
        if isinstance(raw, dict):
            database = raw.get("database")
            user_name = raw.get("userName") or raw.get("user_name")
        else:
            database = getattr(raw, "database", None)
            user_name = getattr(raw, "user_name", None)

        if not database:
            raise SessionUnavailable("Host session has no database")
        return cls(database=database, user_name=user_name)


class SessionProvider(ABC):
    """Source of the current host session"""

    @abstractmethod
    def get_session(self) -> Session:
        """
        Current session

        Raises:
            SessionUnavailable: session could not be resolved
        """
        ...


class StaticSessionProvider(SessionProvider):
    """Fixed database (CLI, Lambda handler, tests)"""

    def __init__(self, database: str, user_name: str = None):
        self.database = database
        self.user_name = user_name

    def get_session(self) -> Session:
        return Session.from_host({"database": self.database, "user_name": self.user_name})


class CallbackSessionProvider(SessionProvider):
    """
    Adapter for host APIs that deliver the session to a callback,
    e.g. api.getSession(callback). Waits for the callback and returns the result.
    """

    def __init__(self, get_session: Callable[[Callable[[Any], None]], None], timeout: float = 10.0):
        """
        Args:
            get_session: host function taking a callback
            timeout: seconds to wait for the callback
        """
        self._get_session = get_session
        self.timeout = timeout

    def get_session(self) -> Session:
        received = {}
        done = threading.Event()

        def callback(raw):
            received["session"] = raw
            done.set()

        try:
            self._get_session(callback)
        except Exception as e:
            logger.error(f"Host getSession failed: {e}")
            raise SessionUnavailable(f"Host getSession failed: {e}") from e

        if not done.wait(self.timeout):
            raise SessionUnavailable(f"Host session not received within {self.timeout}s")

        return Session.from_host(received["session"])
