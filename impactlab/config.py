"""Configuration module for Impact Lab.

Loads environment-backed configuration with sensible defaults for a local
deployment. Uses python-dotenv to enable `.env` files during local runs while
keeping runtime dependencies explicit.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import os

from dotenv import load_dotenv

# Load environment variables from a `.env` file if present.
load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_FALLBACK_DATASET = PACKAGE_DIR / "data" / "asteroids-fallback.json"


@dataclass(frozen=True)
class Settings:
    """Container for tunable runtime parameters."""

    debug: bool = bool(int(os.getenv("IMPACTLAB_DEBUG", "1")))
    nasa_api_key: str = os.getenv("NASA_API_KEY", "DEMO_KEY")
    use_live_apis: bool = bool(int(os.getenv("IMPACTLAB_USE_LIVE_APIS", "1")))
    http_timeout_s: float = float(os.getenv("IMPACTLAB_HTTP_TIMEOUT", "10"))
    user_agent: str = os.getenv(
        "IMPACTLAB_USER_AGENT", "ImpactLab/1.0 (+https://example.com/contact)"
    )
    fallback_dataset: str = os.getenv("IMPACTLAB_FALLBACK_DATASET", str(DEFAULT_FALLBACK_DATASET))
    # "resolved" uses the looked-up ocean depth, "fixed" a 50 m shelf depth.
    tsunami_arrival_depth_mode: str = os.getenv("IMPACTLAB_TSUNAMI_ARRIVAL_DEPTH", "resolved")
    orbit_sample_points: int = int(os.getenv("IMPACTLAB_ORBIT_SAMPLES", "180"))
    port: int = int(os.getenv("IMPACTLAB_PORT", "3000"))


def get_settings() -> Settings:
    """Factory returning immutable settings instance."""

    return Settings()
