import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "EFFLUENT_"


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    regulations_path: Optional[Path] = None


def get_settings() -> Settings:
    env = os.environ
    origins = env.get(f"{ENV_PREFIX}CORS_ORIGINS", "*")
    path = env.get(f"{ENV_PREFIX}REGULATIONS_PATH")
    return Settings(
        log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        regulations_path=Path(path) if path else None,
    )
