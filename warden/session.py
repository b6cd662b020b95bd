"""Session and target configuration for Warden"""

import json
import logging
import os
import re
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from warden.config import Settings, settings
from warden.errors import InvalidTargetError
from warden.models import Session, Target

logger = logging.getLogger(__name__)


def _host_slug(host: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "-", host).strip("-").lower()


def make_session_id(host: str, when: Optional[datetime] = None) -> str:
    """Session id from timestamp + host, e.g. 20250101_120000_db-example-internal"""
    when = when or datetime.now()
    return f"{when.strftime('%Y%m%d_%H%M%S')}_{_host_slug(host)}"


def validate_target(host: str, port, username: str) -> int:
    """Validate target fields, returning the port as int"""
    if not host or not host.strip():
        raise InvalidTargetError("Host is required")
    if any(c.isspace() for c in host.strip()):
        raise InvalidTargetError(f"Invalid host: {host!r}")

    try:
        port_num = int(port)
    except (TypeError, ValueError):
        raise InvalidTargetError(f"Port must be an integer, got {port!r}")
    if isinstance(port, bool) or port_num <= 0 or port_num > 65535 or str(port_num) != str(port).strip():
        raise InvalidTargetError(f"Port must be a positive integer in 1-65535, got {port!r}")

    if not username or not username.strip():
        raise InvalidTargetError("Username is required")

    return port_num


def configure(
    host: str,
    port: int,
    username: str,
    password: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Session:
    """Validate the target and open a new session for it"""
    port_num = validate_target(host, port, username)
    host = host.strip()

    target = Target(host=host, port=port_num, username=username.strip(), password=password or None)
    start = now or datetime.now()
    session = Session(session_id=make_session_id(host, start), target=target, start_time=start)

    logger.info(f"Session {session.session_id} configured for {target.address}")
    return session


class SessionStore:
    """Persist the current session between CLI invocations"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.path = self.config.session_file

    def save(self, session: Session) -> str:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

        # Holds the password for authenticated tests
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(session.model_dump_json(indent=2))

        logger.debug(f"Session saved to {self.path}")
        return self.path

    def load(self) -> Optional[Session]:
        if not os.path.exists(self.path):
            return None

        with open(self.path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidTargetError(f"Corrupt session file {self.path}: {e}")

        try:
            return Session.model_validate(data)
        except ValidationError as e:
            raise InvalidTargetError(f"Invalid session file {self.path}: {e}")
