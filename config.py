"""Shop web application settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from werkzeug.security import generate_password_hash

from common.config import AppConfig, load_env


@dataclass
class ShopConfig:
    """Web-layer settings: session secret, admin credentials, data directory."""

    secret_key: str
    admin_username: str
    admin_password_hash: str
    data_dir: Path
    app: AppConfig = field(default_factory=lambda: load_env())

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def admin_credentials_file(self) -> Path:
        return self.data_dir / "admin.json"

    def save_admin_credentials(self, username: str, password_hash: str) -> None:
        self.admin_credentials_file.write_text(
            json.dumps({"username": username, "password_hash": password_hash}, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        self.admin_username = username
        self.admin_password_hash = password_hash

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "ShopConfig":
        """Build settings from the environment and ensure the data directory exists."""

        data_dir = data_dir or Path(__file__).resolve().parent / "data"
        data_dir.mkdir(parents=True, exist_ok=True)

        app_config = load_env(data_dir / "settings.json")
        config = cls(
            secret_key=os.environ.get("SECRET_KEY", "dev_secret"),
            admin_username=os.environ.get("ADMIN_USER", "admin"),
            admin_password_hash=generate_password_hash(os.environ.get("ADMIN_PASSWORD", "admin123")),
            data_dir=data_dir,
            app=app_config,
        )

        # admin.json (written by change-password) wins over the environment
        if config.admin_credentials_file.exists():
            admin_data = json.loads(config.admin_credentials_file.read_text(encoding="utf-8"))
            if isinstance(admin_data, dict) and admin_data.get("password_hash"):
                config.admin_username = admin_data.get("username", config.admin_username)
                config.admin_password_hash = admin_data["password_hash"]

        return config
