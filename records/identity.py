"""Anonymous or token-based identity yielding a stable user id."""

import hashlib
import logging
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Union

import yaml

from .errors import AuthError

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[str]], None]


class IdentityProvider:
    """
    Tracks the signed-in user id.

    With a `state_file`, an anonymous id is kept between runs.
    """

    def __init__(self, state_file: Optional[Union[str, Path]] = None):
        self.state_file = Path(state_file) if state_file else None
        self._user_id: Optional[str] = None
        self._listeners: List[AuthListener] = []

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        """Call `listener` with the user id on every auth state change."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_user(self, user_id: Optional[str]) -> None:
        self._user_id = user_id
        for listener in list(self._listeners):
            listener(user_id)

    def _read_state(self) -> Optional[str]:
        if self.state_file is None or not self.state_file.exists():
            return None
        try:
            with open(self.state_file, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            raise AuthError(f"Could not read identity state: {e}") from e
        user_id = data.get("userId") if isinstance(data, dict) else None
        return str(user_id) if user_id else None

    def _write_state(self, user_id: str) -> None:
        if self.state_file is None:
            return
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_file, "w") as fp:
                yaml.dump({"userId": user_id}, fp, default_flow_style=False)
        except OSError as e:
            raise AuthError(f"Could not save identity state: {e}") from e

    def sign_in_anonymously(self) -> str:
        user_id = self._read_state()
        if user_id is None:
            user_id = uuid.uuid4().hex
            self._write_state(user_id)
        logger.info("Signed in anonymously as %s", user_id)
        self._set_user(user_id)
        return user_id

    def sign_in_with_token(self, token: str) -> str:
        """The same token always yields the same user id."""
        if not token or not token.strip():
            raise AuthError("Auth token is empty")
        user_id = hashlib.sha256(token.strip().encode("utf-8")).hexdigest()[:28]
        logger.info("Signed in with token as %s", user_id)
        self._set_user(user_id)
        return user_id

    def sign_in(self, token: Optional[str] = None) -> str:
        """Token sign-in when a token is given, anonymous otherwise."""
        if token:
            return self.sign_in_with_token(token)
        return self.sign_in_anonymously()

    def sign_out(self) -> None:
        self._set_user(None)
