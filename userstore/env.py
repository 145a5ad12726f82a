import os
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///data/users.db"


def load_env() -> None:
    """Load .env from the working directory if present.
    Variables already set in the environment are left untouched.
    """
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def get_database_url() -> str:
    """Connection URL from DATABASE_URL, or the local development default."""
    return os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL
