import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Storage Paths
STORAGE_PATH = Path(os.path.expandvars(os.path.expanduser(
    os.getenv("STORAGE_PATH", "~/.local/share/anisync")
)))
HISTORY_FILENAME = "anisync_history.csv"
LAST_WATCHED_FILENAME = "anisync_id"
TOKEN_FILENAME = "token"
LOG_FILENAME = "anisync.log"

# Catalog Settings
SUB_OR_DUB = os.getenv("SUB_OR_DUB", "sub")
CATALOG_API_URL = "https://api.allanime.day/api"
CATALOG_BASE_URL = "https://allanime.day"
CATALOG_REFERER = "https://allanime.to"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0"
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

# Hosts are tried in this order when picking the link to play
LINK_PRIORITY = [
    host.strip() for host in
    os.getenv("LINK_PRIORITY", "sharepoint.com,wixmp.com,dropbox.com,wetransfer.com,gogoanime.com").split(",")
    if host.strip()
]

# Playback Settings
MPV_PATH = os.getenv("MPV_PATH", "mpv")
POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "1"))
PERCENTAGE_TO_MARK_COMPLETE = int(os.getenv("PERCENTAGE_TO_MARK_COMPLETE", "85"))
RESUME_THRESHOLD = 10  # seconds, offsets at or below this start from the beginning
RESUME_REWIND = 5  # seconds replayed before the saved offset
IPC_CONNECT_TIMEOUT = 5.0

# Tracker Settings
ANILIST_API_URL = "https://graphql.anilist.co"
TRACKER_RETRIES = int(os.getenv("TRACKER_RETRIES", "3"))


@dataclass
class SyncConfig:
    storage_path: Path = STORAGE_PATH
    sub_or_dub: str = SUB_OR_DUB
    percentage_to_mark_complete: int = PERCENTAGE_TO_MARK_COMPLETE
    mpv_path: str = MPV_PATH
    request_timeout: float = REQUEST_TIMEOUT
    poll_interval: float = POLL_INTERVAL
    resume_threshold: int = RESUME_THRESHOLD
    resume_rewind: int = RESUME_REWIND
    ipc_connect_timeout: float = IPC_CONNECT_TIMEOUT
    tracker_retries: int = TRACKER_RETRIES
    tracker_backoff: float = 1.0
    link_priority: List[str] = field(default_factory=lambda: list(LINK_PRIORITY))
    catalog_api_url: str = CATALOG_API_URL
    catalog_base_url: str = CATALOG_BASE_URL
    anilist_api_url: str = ANILIST_API_URL
    log_level: str = LOG_LEVEL

    @classmethod
    def from_env(cls) -> "SyncConfig":
        return cls()

    @property
    def history_file(self) -> Path:
        return self.storage_path / HISTORY_FILENAME

    @property
    def last_watched_file(self) -> Path:
        return self.storage_path / LAST_WATCHED_FILENAME

    @property
    def token_file(self) -> Path:
        return self.storage_path / TOKEN_FILENAME

    @property
    def log_file(self) -> Path:
        return self.storage_path / LOG_FILENAME

    @property
    def headers(self) -> dict:
        """Headers the catalog service insists on."""
        return {"Referer": CATALOG_REFERER, "User-Agent": USER_AGENT}
