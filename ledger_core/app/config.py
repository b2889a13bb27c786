import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


DEFAULT_PORT = 4003
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def default_database_url() -> str:
    """
    SQLite file in a `data/` folder next to the package, used when
    DATABASE_URL is not set.
    """
    pkg_root = Path(__file__).resolve().parents[1]
    data_dir = pkg_root / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(data_dir / 'ledger.db').as_posix()}"


def default_upload_dir() -> Path:
    if os.getenv("VERCEL"):
        return Path("/tmp/uploads")
    return Path(__file__).resolve().parents[1] / "uploads"


def get_cors_origins() -> List[str]:
    """Get CORS origins from environment, allow everything when unset"""
    origins_env = os.getenv("CORS_ORIGINS", "")
    if origins_env:
        return [o.strip() for o in origins_env.split(",") if o.strip()]
    return ["*"]


@dataclass
class Settings:
    database_url: str
    port: int = DEFAULT_PORT
    upload_dir: Path = field(default_factory=default_upload_dir)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, database_url: Optional[str] = None) -> "Settings":
        upload_env = os.getenv("UPLOAD_DIR")
        return cls(
            database_url=database_url or os.getenv("DATABASE_URL") or default_database_url(),
            port=int(os.getenv("PORT", str(DEFAULT_PORT))),
            upload_dir=Path(upload_env) if upload_env else default_upload_dir(),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
            cors_origins=get_cors_origins(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
