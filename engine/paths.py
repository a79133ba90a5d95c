import os
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOG_FILE_NAME = "squad_wrapped.log"


def _default_data_dir():
    # Containers mount a /data volume; local runs keep state beside the checkout.
    if os.path.exists("/.dockerenv") or os.path.isdir("/data"):
        return Path("/data")
    return PROJECT_ROOT / "data"


DATA_DIR = Path(os.environ.get("SQUAD_WRAPPED_DATA_DIR", _default_data_dir())).resolve()
LOG_DIR = Path(os.environ.get("SQUAD_WRAPPED_LOG_DIR", DATA_DIR / "logs")).resolve()


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def log_file_path(log_dir=None):
    return os.path.join(log_dir or LOG_DIR, LOG_FILE_NAME)
