from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from i18n_keyguard import config as config_module
from i18n_keyguard.utils import configure_logging


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path, monkeypatch):
    """Keep the real user-wide config file out of every test."""
    monkeypatch.setattr(
        config_module, "USER_CONFIG_FILE", tmp_path / "user-config" / "config.json"
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small application with fragments, sources and a compiled dictionary."""
    root = tmp_path / "project"
    app = root / "app"
    write_json(app / "en.json", {"common": {"save": "Save", "cancel": "Cancel"}})
    write_json(app / "de.json", {"common": {"save": "Speichern"}})
    write_json(app / "pages" / "home" / "en.json", {"title": "Home", "intro": "Welcome"})
    write_json(app / "pages" / "home" / "de.json", {"title": "Startseite"})
    (app / "pages" / "home" / "index.vue").write_text(
        "<script setup>\n"
        "const T = useTranslations('pages.home')\n"
        "const { t } = useI18n()\n"
        "</script>\n"
        "<template>{{ T('title') }} {{ t('common.save') }}</template>\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture(autouse=True)
def quiet_logging():
    """Detach handlers bound to captured streams once a test finishes."""
    yield
    configure_logging(handler=logging.NullHandler())
