# review_scraper/fetcher.py
import logging
import random
import time
from typing import Callable, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import requests

from review_scraper.config import DEFAULT_HEADERS, ScraperConfig
from review_scraper.errors import FetchError

log = logging.getLogger("fetcher")


def with_params(url: str, params: Optional[Dict] = None) -> str:
    """Merge ``params`` into the query string of ``url`` (params win)."""
    if not params:
        return url
    parsed = urlparse(url)
    query = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query.update({k: str(v) for k, v in params.items()})
    return urlunparse(parsed._replace(query=urlencode(query)))


class Fetcher:
    """HTTP GET with politeness delay, UA rotation, retry/backoff and optional relay.

    One instance per scrape; the config it holds is read-only.
    """

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        renderer: Optional[Callable] = None,
    ):
        self.config = config or ScraperConfig()
        self.session = session or requests.Session()
        self.sleep = sleep
        self.renderer = renderer

    def user_agent(self) -> str:
        return random.choice(self.config.user_agents)

    def _use_relay(self, relay: Optional[bool]) -> bool:
        wanted = self.config.relay.enabled if relay is None else relay
        if wanted and not self.config.relay.api_key:
            log.warning("Relay requested but no API key configured; fetching directly")
            return False
        return wanted

    def fetch(
        self,
        url: str,
        params: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
        relay: Optional[bool] = None,
        relay_params: Optional[Dict] = None,
        timeout: Optional[float] = None,
    ) -> str:
        retry = self.config.retry
        target = with_params(url, params)
        use_relay = self._use_relay(relay)

        self.sleep(random.uniform(retry.politeness_min_s, retry.politeness_max_s))

        attempt = 0
        while True:
            log.info("Attempt %d/%d for %s", attempt + 1, retry.retries + 1, target)
            try:
                html = self._attempt(target, headers, use_relay, relay_params, timeout)
                log.info("Fetched %s (%d chars)", target, len(html))
                return html
            except FetchError as e:
                attempt += 1
                retryable = e.status is None or e.status in retry.retry_statuses
                if attempt > retry.retries or not retryable:
                    log.error("Giving up on %s after %d attempt(s): %s", target, attempt, e)
                    raise
                delay = retry.delay_for(attempt)
                log.warning("Attempt %d failed (%s); retrying in %.1fs", attempt, e, delay)
                self.sleep(delay)

    def _attempt(self, target, headers, use_relay, relay_params, timeout) -> str:
        ua = self.user_agent()
        if self.config.fetch_mode == "browser" and not use_relay:
            renderer = self.renderer
            if renderer is None:
                from review_scraper.browser import render_page as renderer
            status, html = renderer(
                target,
                user_agent=ua,
                timeout_s=timeout or self.config.timeout_s,
                headless=self.config.headless,
            )
            if not 200 <= status < 300:
                raise FetchError(target, f"HTTP {status}", status=status, body=html[:2000])
            return html

        req_headers = dict(DEFAULT_HEADERS)
        req_headers["User-Agent"] = ua
        if headers:
            req_headers.update(headers)

        if use_relay:
            relay_cfg = self.config.relay
            query = {"url": target, "apikey": relay_cfg.api_key}
            query.update(relay_cfg.params)
            query.update({k: str(v) for k, v in (relay_params or {}).items()})
            request_url = relay_cfg.url
            req_timeout = timeout or relay_cfg.timeout_s
        else:
            query = None
            request_url = target
            req_timeout = timeout or self.config.timeout_s

        try:
            resp = self.session.get(request_url, params=query, headers=req_headers, timeout=req_timeout)
        except requests.Timeout as e:
            raise FetchError(target, f"Timed out after {req_timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(target, f"Network error: {e}") from e

        if not resp.ok:
            prefix = "Relay error: " if use_relay else ""
            raise FetchError(
                target,
                f"{prefix}HTTP {resp.status_code} {resp.reason}",
                status=resp.status_code,
                body=resp.text[:2000],
            )
        return resp.text
