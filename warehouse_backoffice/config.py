import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# WAREHOUSE_DB_PATH overrides the bundled data/ location (tests, deployments)
DB_PATH = Path(os.environ.get("WAREHOUSE_DB_PATH", DATA_PATH / DB_FILE_NAME))

# seconds sqlite waits on a locked database before raising "database is locked"
BUSY_TIMEOUT = float(os.environ.get("WAREHOUSE_BUSY_TIMEOUT", "5.0"))

# retries for opening a write transaction; nothing has been written at that point
TX_BEGIN_RETRIES = int(os.environ.get("WAREHOUSE_TX_RETRIES", "3"))
TX_RETRY_DELAY = float(os.environ.get("WAREHOUSE_TX_RETRY_DELAY", "0.05"))
