"""
Runtime configuration for the Mindspace service.

Values come from the process environment, optionally seeded from a `.env`
file in the working directory.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Service settings. Defaults suit local development."""

    db_path: Path = Path("database.json")
    backup_dir: Path = Path("backups")
    backup_keep: int = 24
    backup_interval: float = 3600.0  # seconds, 0 disables periodic backups
    io_timeout: float = 5.0
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )

    def __post_init__(self) -> None:
        if self.backup_keep < 1:
            raise ValueError("MINDSPACE_BACKUP_KEEP must be at least 1")
        if self.io_timeout <= 0:
            raise ValueError("MINDSPACE_IO_TIMEOUT must be positive")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from `MINDSPACE_*` environment variables."""
        load_dotenv()
        defaults = cls()
        return cls(
            db_path=Path(os.getenv("MINDSPACE_DB_PATH", str(defaults.db_path))),
            backup_dir=Path(
                os.getenv("MINDSPACE_BACKUP_DIR", str(defaults.backup_dir))
            ),
            backup_keep=int(os.getenv("MINDSPACE_BACKUP_KEEP", defaults.backup_keep)),
            backup_interval=float(
                os.getenv("MINDSPACE_BACKUP_INTERVAL", defaults.backup_interval)
            ),
            io_timeout=float(os.getenv("MINDSPACE_IO_TIMEOUT", defaults.io_timeout)),
            host=os.getenv("MINDSPACE_HOST", defaults.host),
            port=int(os.getenv("MINDSPACE_PORT", defaults.port)),
            log_level=os.getenv("MINDSPACE_LOG_LEVEL", defaults.log_level),
            cors_origins=_split_csv(
                os.getenv("MINDSPACE_CORS_ORIGINS", ",".join(defaults.cors_origins))
            ),
        )
