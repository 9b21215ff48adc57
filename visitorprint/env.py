import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_TIMEOUT_MS = 3000


def load_env() -> None:
    """Load .env from the working directory if present. Existing variables win."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_timeout_ms: int = DEFAULT_API_TIMEOUT_MS
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @property
    def api_timeout(self) -> float:
        """Provider timeout in seconds, as requests expects it."""
        return self.api_timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        log_dir = os.getenv("VISITORPRINT_LOG_DIR", "").strip()
        return cls(
            api_timeout_ms=_env_int("VISITORPRINT_API_TIMEOUT", DEFAULT_API_TIMEOUT_MS),
            log_level=os.getenv("VISITORPRINT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
            log_dir=Path(log_dir) if log_dir else None,
        )
