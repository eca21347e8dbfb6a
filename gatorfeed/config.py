"""The per-user JSON configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"


def config_file_path(home: str | Path | None = None) -> Path:
    """Return the configuration file's location inside ``home``."""
    return Path(home if home is not None else Path.home()) / CONFIG_FILE_NAME


@dataclass
class Config:
    """Database URL and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, user_name: str) -> None:
        """Make ``user_name`` the current user and save."""
        self.current_user_name = user_name
        self.save()

    def save(self) -> None:
        """Write the configuration to its file."""
        payload = {"db_url": self.db_url, "current_user_name": self.current_user_name}
        target = self.path or config_file_path()
        target.write_text(json.dumps(payload, separators=(",", ":")) + "\n", encoding="utf-8")


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration; raises OSError or ValueError."""
    location = Path(path) if path is not None else config_file_path()
    text = location.read_text(encoding="utf-8")
    try:
        data, _ = json.JSONDecoder().raw_decode(text.lstrip())
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid configuration file {location}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"invalid configuration file {location}: expected an object")
    values = {}
    for key in ("db_url", "current_user_name"):
        value = data.get(key) or ""
        if not isinstance(value, str):
            raise ValueError(f"invalid configuration file {location}: {key} must be a string")
        values[key] = value
    return Config(path=location, **values)