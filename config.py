"""Storefront 網站應用設定模組。"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from storefront.services.logging import log_event


@dataclass
class StorefrontConfig:
    """封裝網站層（session、後台帳密、資料目錄）的設定值。"""

    secret_key: str
    admin_username: str
    admin_password: str
    app_root: Path

    @property
    def data_dir(self) -> Path:
        return self.app_root / "data"

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def admin_credentials_file(self) -> Path:
        return self.data_dir / "admin.json"

    @classmethod
    def load(cls, app_root: Path | None = None) -> "StorefrontConfig":
        """從環境變數建構設定，並確保必要目錄存在。"""

        app_root = app_root or Path(__file__).resolve().parent
        admin_username = os.environ.get("STOREFRONT_ADMIN_USER", "admin")
        admin_password = os.environ.get("STOREFRONT_ADMIN_PASS", "storefront")

        config = cls(
            secret_key=os.environ.get("STOREFRONT_SECRET_KEY", "storefront-dev-secret"),
            admin_username=admin_username,
            admin_password=admin_password,
            app_root=app_root,
        )
        config.data_dir.mkdir(parents=True, exist_ok=True)

        # 如果存在 admin.json，從檔案讀取管理員帳密（優先於環境變數）
        if config.admin_credentials_file.exists():
            try:
                admin_data = json.loads(config.admin_credentials_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                log_event("warning", "config.admin_file_invalid", path=str(config.admin_credentials_file), error=str(exc))
            else:
                if isinstance(admin_data, dict):
                    config.admin_username = admin_data.get("username", admin_username)
                    config.admin_password = admin_data.get("password", admin_password)
                    log_event("info", "config.admin_file_loaded", path=str(config.admin_credentials_file))

        # 確保 settings.json 存在，使用預設值（若不存在）
        if not config.settings_file.exists():
            default_settings = {"CURRENCY": "INR", "TAX_RATE": "0.18"}
            config.settings_file.write_text(
                json.dumps(default_settings, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            log_event("info", "config.settings_created", path=str(config.settings_file))

        return config
