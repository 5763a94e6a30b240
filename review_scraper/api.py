# review_scraper/api.py
import asyncio
import logging
import platform
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from review_scraper.config import load_config
from review_scraper.errors import FetchError, SourceError, ValidationError
from review_scraper.orchestrator import scrape_result
from review_scraper.sources import SOURCES

log = logging.getLogger("api")

app = FastAPI(title="SaaS Review Scraper API", version="0.2.0")

MOCK_SUGGESTION = (
    "Real web scraping often encounters anti-bot measures. "
    "For reliable testing, use the 'mock' source."
)


class ScrapeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    company: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    source: Optional[str] = None


def _failure(status: int, error: str, suggestion: Optional[str] = None) -> JSONResponse:
    body = {"success": False, "error": error}
    if suggestion:
        body["suggestion"] = suggestion
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError):
    return _failure(400, "Malformed request body", "Send JSON with company, startDate, endDate and source.")


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "sources": list(SOURCES.keys()),
        "python_version": platform.python_version(),
        "executable": sys.executable,
        "platform": platform.platform(),
    }


@app.post("/api/scrape")
async def scrape(req: ScrapeRequest):
    if not (req.company and req.startDate and req.endDate and req.source):
        return _failure(400, "Missing required fields", "Provide company, startDate, endDate and source.")
    source = req.source.lower()
    if source not in SOURCES:
        return _failure(400, f"Unsupported source '{req.source}'", f"Use one of: {', '.join(SOURCES)}.")

    config = load_config()
    try:
        result = await asyncio.to_thread(
            scrape_result,
            req.company,
            req.startDate,
            req.endDate,
            source,
            config.api_max_pages,
            config,
        )
    except ValidationError as e:
        return _failure(400, str(e), "Dates must be YYYY-MM-DD with startDate on or before endDate.")
    except (FetchError, SourceError) as e:
        log.warning("Real scraping failed for %s: %s", source, e)
        return _failure(
            422,
            f"Real scraping failed for {source}: {e}. This is common due to anti-bot protection. "
            "Try using 'mock' source for testing.",
            MOCK_SUGGESTION,
        )
    except Exception as e:
        log.exception("Scrape failed")
        return _failure(500, f"Internal server error: {e}")

    return {
        "success": True,
        "message": f"Successfully scraped {len(result.reviews)} reviews for {req.company} from {source}",
        "reviews": [r.model_dump() for r in result.reviews],
        "metadata": result.api_metadata(),
    }
