# review_scraper/browser.py
import logging
import os
import random
from typing import Tuple

from playwright.sync_api import sync_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from review_scraper.errors import FetchError

log = logging.getLogger("browser")

_STEALTH_JS = """
Object.defineProperty(navigator,'webdriver',{get:()=>undefined});
Object.defineProperty(navigator,'plugins',{get:()=>[1,2,3,4,5]});
Object.defineProperty(navigator,'languages',{get:()=>['en-US','en']});
window.chrome = { runtime: {} };
"""

_VIEWPORTS = [(1366, 768), (1440, 900), (1536, 864), (1280, 800), (1920, 1080)]


def render_page(url: str, user_agent: str, timeout_s: float = 30.0, headless: bool = True) -> Tuple[int, str]:
    """Load ``url`` in headless Chromium and return (status, rendered html).

    Used when plain HTTP gets served an empty JS shell. Honors PLAYWRIGHT_PROXY /
    HTTPS_PROXY for routing through a proxy.
    """
    launch_kwargs = {"headless": headless}
    proxy_server = os.getenv("PLAYWRIGHT_PROXY") or os.getenv("HTTPS_PROXY") or os.getenv("HTTP_PROXY")
    if proxy_server:
        launch_kwargs["proxy"] = {"server": proxy_server}
    vw = random.choice(_VIEWPORTS)
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(**launch_kwargs)
            try:
                context = browser.new_context(
                    viewport={"width": vw[0], "height": vw[1]},
                    user_agent=user_agent,
                    locale="en-US",
                    extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
                )
                context.add_init_script(_STEALTH_JS)
                page = context.new_page()
                response = page.goto(url, wait_until="domcontentloaded", timeout=timeout_s * 1000)
                # lazy-loaded review cards only hydrate after a scroll
                page.evaluate("window.scrollTo(0, document.body.scrollHeight/2)")
                page.wait_for_timeout(random.randint(600, 1200))
                status = response.status if response else 200
                return status, page.content()
            finally:
                browser.close()
    except PlaywrightTimeoutError as e:
        raise FetchError(url, f"Browser timed out after {timeout_s}s") from e
    except PlaywrightError as e:
        log.warning("Browser navigation failed for %s: %s", url, e)
        raise FetchError(url, f"Browser error: {e}") from e
