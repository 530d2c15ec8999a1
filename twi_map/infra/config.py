import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(os.environ.get("TWI_MAP_DATA_DIR", Path.home() / ".twi-map"))
DB_PATH = DATA_DIR / "twi-map.db"

# Static vocabulary tables (canonical names, exclusions, anchors, seeds)
PACKAGED_TABLES_DIR = Path(__file__).resolve().parent.parent / "data"
TABLES_DIR = Path(os.environ.get("TWI_MAP_TABLES_DIR", PACKAGED_TABLES_DIR))

# Aggregation thresholds. These are defaults; the aggregator, traceability
# filter and coordinate estimator all take them as constructor arguments.
MIN_MENTIONS = int(os.environ.get("TWI_MAP_MIN_MENTIONS", "3"))
MAX_CONTAINMENT_DEPTH = int(os.environ.get("TWI_MAP_MAX_CONTAINMENT_DEPTH", "10"))

SERVER_HOST = os.environ.get("TWI_MAP_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("TWI_MAP_PORT", "8080"))


def set_data_dir(path: str | Path) -> None:
    """Point the store at another data directory (CLI ``--data-dir``)."""
    global DATA_DIR, DB_PATH  # noqa: PLW0603

    DATA_DIR = Path(path)
    DB_PATH = DATA_DIR / "twi-map.db"


def set_tables_dir(path: str | Path) -> None:
    global TABLES_DIR  # noqa: PLW0603

    TABLES_DIR = Path(path)


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
