# config/resolvers.py
from pathlib import Path
from typing import Optional
from platformdirs import user_data_dir

APP = "zoneconf"
SCHEMA_VERSION = 1  # increment when schema changes

def default_database_path() -> Path:
    p = Path(user_data_dir(APP))
    p.mkdir(parents=True, exist_ok=True)
    return p / f"zones-v{SCHEMA_VERSION}.sqlite"

def resolve_database_path(db_path: Optional[str], *, must_exist: bool = False) -> Path:
    """
    Decide which store DB this run uses:
    - explicit path wins; ":memory:" is passed through untouched
    - otherwise the per-user default under the platform data dir
    - must_exist=True refuses to create a new DB (read-only commands)
    """
    if db_path == ":memory:":
        return Path(db_path)
    p = Path(db_path).expanduser() if db_path else default_database_path()
    if must_exist and not p.exists():
        raise FileNotFoundError(f"Zone database not found: {p}")
    return p
