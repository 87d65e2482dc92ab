"""
Run configuration.

Values come from the environment (optionally a .env file via
python-dotenv) and are passed explicitly to each component.
"""

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_CATALOG_URL = "https://api.nasa.gov/EPIC"
DEFAULT_MIRROR_URL = "http://localhost:8080"


def _env_number(name: str, default, cast, minimum, inclusive: bool = True):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum or (not inclusive and value == minimum):
        bound = ">=" if inclusive else ">"
        raise ValueError(f"{name} must be {bound} {minimum}, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    api_key: str = "DEMO_KEY"
    catalog_url: str = DEFAULT_CATALOG_URL
    mirror_url: str = DEFAULT_MIRROR_URL
    output_dir: Path = Path(tempfile.gettempdir())
    request_timeout: float = 30.0
    download_timeout: float = 120.0
    workers: int = 1
    date_limit: int | None = None

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        The API key is not validated here; a bad key surfaces as a
        TransportError from the first catalog request.
        """
        if load_env_file:
            load_dotenv()

        return cls(
            api_key=os.getenv("NASA_API_KEY") or "DEMO_KEY",
            catalog_url=os.getenv("EPIC_CATALOG_URL", DEFAULT_CATALOG_URL).rstrip("/"),
            mirror_url=os.getenv("EPIC_MIRROR_URL", DEFAULT_MIRROR_URL).rstrip("/"),
            output_dir=Path(os.getenv("EPIC_OUTPUT_DIR") or tempfile.gettempdir()),
            request_timeout=_env_number("EPIC_REQUEST_TIMEOUT", 30.0, float, 0, inclusive=False),
            download_timeout=_env_number("EPIC_DOWNLOAD_TIMEOUT", 120.0, float, 0, inclusive=False),
            workers=_env_number("EPIC_WORKERS", 1, int, 1),
            date_limit=_env_number("EPIC_DATE_LIMIT", None, int, 0),
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
