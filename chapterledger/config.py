import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _default_sqlite_uri() -> str:
    instance_path = BASE_DIR / "instance"
    instance_path.mkdir(exist_ok=True)
    return f"sqlite:///{instance_path / 'chapterledger.db'}"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


class Config:
    """Base configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_sqlite_uri())
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # External model
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-5.1")
    MODEL_TEMPERATURE = _env_float("MODEL_TEMPERATURE", 0.8)
    MODEL_MAX_OUTPUT_TOKENS = _env_int("MODEL_MAX_OUTPUT_TOKENS", 16000)

    # Chapter pipeline
    CHAPTER_APPROVAL_MIN_CHARS = _env_int("CHAPTER_APPROVAL_MIN_CHARS", 50)
    USER_TEXT_PREVIEW_CHARS = _env_int("USER_TEXT_PREVIEW_CHARS", 2000)
    JSON_SALVAGE_MAX_ATTEMPTS = _env_int("JSON_SALVAGE_MAX_ATTEMPTS", 30)
    PROJECT_LIST_LIMIT = _env_int("PROJECT_LIST_LIMIT", 200)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    OPENAI_API_KEY = ""
