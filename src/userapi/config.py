import os
from dataclasses import dataclass
from typing import Tuple, Union

from dotenv import load_dotenv

from userapi.handler.body import DEFAULT_BODY_LIMIT

PORT = 5000
DEFAULT_HOST = "0.0.0.0"


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = PORT
    log_level: str = "INFO"
    body_limit: int = DEFAULT_BODY_LIMIT
    cors_origins: Union[str, Tuple[str, ...]] = "*"
    cors_credentials: bool = False


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_origins(value: str) -> Union[str, Tuple[str, ...]]:
    origins = tuple(o.strip() for o in value.split(",") if o.strip())
    if not origins or "*" in origins:
        return "*"
    return origins


def load_settings() -> Settings:
    """Read settings from the environment, after loading a local .env file."""
    load_dotenv()
    return Settings(
        host=os.getenv("HOST", DEFAULT_HOST),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        body_limit=int(os.getenv("BODY_LIMIT", DEFAULT_BODY_LIMIT)),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "*")),
        cors_credentials=_parse_bool(os.getenv("CORS_CREDENTIALS", "false")),
    )
