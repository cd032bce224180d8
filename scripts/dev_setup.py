"""Write the local .env used by the chapter ledger service and create its database."""
from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import Dict

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from chapterledger import create_app
from chapterledger.extensions import db

DEFAULT_ENV_PATH = REPO_ROOT / ".env"
BACKUP_SUFFIX = ".bak"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create or update the .env file for local development and create the project table."
    )
    parser.add_argument("--flask-app", default="wsgi.py", help="Entry point used by Flask (default: wsgi.py)")
    parser.add_argument("--secret-key", help="Flask secret key. Keeps the current .env value when omitted.")
    parser.add_argument("--openai-api-key", help="API key for the model provider.")
    parser.add_argument("--openai-model", help="Model name, for example gpt-5.1 or gpt-4o-mini.")
    parser.add_argument("--database-url", help="Override DATABASE_URL (defaults to instance/chapterledger.db).")
    parser.add_argument(
        "--env-path",
        type=Path,
        default=DEFAULT_ENV_PATH,
        help="Path of the .env file to create or update.",
    )
    parser.add_argument("--skip-db", action="store_true", help="Only update the .env file.")
    return parser.parse_args()


def read_env(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    data: Dict[str, str] = {}
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        data[key.strip()] = value.strip()
    return data


def write_env(path: Path, values: Dict[str, str]) -> None:
    if path.exists():
        backup_path = path.with_suffix(path.suffix + BACKUP_SUFFIX)
        shutil.copy(path, backup_path)
        print(f"Existing {path.name} backed up to {backup_path.name}.")
    path.write_text("".join(f"{key}={value}\n" for key, value in values.items()))
    print(f"Wrote {len(values)} settings to {path}.")


def update_env_file(args: argparse.Namespace) -> Dict[str, str]:
    env_data = read_env(args.env_path)
    env_data["FLASK_APP"] = args.flask_app
    optional = {
        "SECRET_KEY": args.secret_key,
        "OPENAI_API_KEY": args.openai_api_key,
        "OPENAI_MODEL": args.openai_model,
        "DATABASE_URL": args.database_url,
    }
    env_data.update({key: value for key, value in optional.items() if value})
    write_env(args.env_path, env_data)
    return env_data


def initialize_database() -> None:
    # create_app() already brings the schema up to date; create_all covers fresh URLs.
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"Database ready at {app.config['SQLALCHEMY_DATABASE_URI']}.")


def main() -> None:
    args = parse_args()
    env_values = update_env_file(args)

    if args.skip_db:
        print("Database initialization skipped.")
    else:
        initialize_database()

    print("\nSetup complete:")
    for key in sorted(env_values):
        value = "***" if key in {"SECRET_KEY", "OPENAI_API_KEY"} else env_values[key]
        print(f"  {key}={value}")


if __name__ == "__main__":
    main()
