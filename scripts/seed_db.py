from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from class_attendance.database.bootstrap import DEMO_ACCOUNTS, ensure_demo_accounts


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_accounts(db_config)

    print(
        "OK: Demo logins ready -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"({', '.join(f'{username}/{password}' for _, username, password, _ in DEMO_ACCOUNTS)})"
    )


if __name__ == "__main__":
    main()
