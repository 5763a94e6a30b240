# review_scraper/config.py
import os
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36 Edg/125.0.0.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
)

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

FETCH_MODES = ("direct", "browser")


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)
    retries: int = Field(3, ge=0)
    backoff_base_s: float = Field(2.0, ge=0)
    backoff_factor: float = Field(2.0, ge=1)
    retry_statuses: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})
    politeness_min_s: float = 0.5
    politeness_max_s: float = 1.5

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        return self.backoff_base_s * (self.backoff_factor ** (attempt - 1))


class RelayConfig(BaseModel):
    """Anti-bot relay (ZenRows-compatible query API)."""
    model_config = ConfigDict(frozen=True)
    url: str = "https://api.zenrows.com/v1/"
    api_key: Optional[str] = None
    enabled: bool = False
    timeout_s: float = 60.0
    params: Dict[str, str] = Field(default_factory=lambda: {
        "js_render": "true",
        "premium_proxy": "true",
        "antibot": "true",
        "proxy_country": "us",
    })


class ScraperConfig(BaseModel):
    model_config = ConfigDict(frozen=True)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    user_agents: Tuple[str, ...] = DEFAULT_USER_AGENTS
    fetch_mode: str = "direct"
    timeout_s: float = 30.0
    headless: bool = True
    page_delay_s: float = 0.8
    page_jitter_s: float = 0.3
    trustradius_max_pages: int = 1
    api_max_pages: int = 5
    artifacts_dir: Optional[Path] = None


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(**overrides) -> ScraperConfig:
    """Build the process-wide config from environment variables.

    Keyword overrides win over the environment. The relay key is never
    hardcoded; without ``REVIEW_SCRAPER_RELAY_API_KEY`` every fetch goes direct.
    """
    relay_key = os.getenv("REVIEW_SCRAPER_RELAY_API_KEY") or os.getenv("ZENROWS_API_KEY")
    relay_kwargs = {
        "api_key": relay_key,
        "enabled": _env_flag("REVIEW_SCRAPER_USE_RELAY", default=bool(relay_key)),
    }
    relay_url = os.getenv("REVIEW_SCRAPER_RELAY_URL")
    if relay_url:
        relay_kwargs["url"] = relay_url

    values = {"relay": RelayConfig(**relay_kwargs)}
    mode = (os.getenv("REVIEW_SCRAPER_FETCH_MODE") or "").strip().lower()
    if mode in FETCH_MODES:
        values["fetch_mode"] = mode
    artifacts = os.getenv("REVIEW_SCRAPER_ARTIFACTS_DIR")
    if artifacts:
        values["artifacts_dir"] = Path(artifacts)
    values.update(overrides)
    return ScraperConfig(**values)
