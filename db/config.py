"""
Environment helpers shared by the database layer and the import settings.
"""

from __future__ import annotations

import os
from pathlib import Path

_ENV_FILENAMES: tuple[str, ...] = (".env", ".env.local")


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` under the project root.

    Variables already present in the process environment win.
    """

    root = project_root or Path(__file__).resolve().parents[1]
    for filename in _ENV_FILENAMES:
        env_path = root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key:
                os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg 3 driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def resolve_database_url() -> str:
    """
    Resolve the clinic database URL.

    Priority:
    1) DATABASE_URL
    2) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("DATABASE_URL", "LOCAL_DATABASE_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return normalize_postgres_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL."
    )
