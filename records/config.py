"""Settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .store import collection_path

DEFAULT_APP_ID = "default-app-id"


@dataclass
class Settings:
    app_id: str = DEFAULT_APP_ID
    auth_token: Optional[str] = None
    data_dir: Path = Path("data")
    secret_key: str = "dev-secret-key-change-in-prod"
    log_level: str = "WARNING"

    @property
    def scope_key(self) -> str:
        return collection_path(self.app_id)

    @property
    def identity_file(self) -> Path:
        return self.data_dir / ".identity.yaml"


def load_settings(environ=None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        app_id=env.get("APP_ID") or DEFAULT_APP_ID,
        auth_token=env.get("INITIAL_AUTH_TOKEN") or None,
        data_dir=Path(env.get("SERVICE_DATA_DIR") or "data"),
        secret_key=env.get("SECRET_KEY", "dev-secret-key-change-in-prod"),
        log_level=(env.get("LOG_LEVEL") or "WARNING").upper(),
    )
