# review_scraper/cli.py
import logging
from typing import Optional

import typer

from review_scraper.config import load_config
from review_scraper.errors import ScraperError, ValidationError
from review_scraper.orchestrator import scrape_result
from review_scraper.output import write_reviews
from review_scraper.sources import SOURCES

app = typer.Typer(add_completion=False)

USAGE = 'Usage: review-scraper --company "Notion" --start 2024-01-01 --end 2024-12-31 --source g2 --out notion-g2-2024.json'


@app.command()
def scrape(
    company: Optional[str] = typer.Option(None, help="Company or product name"),
    start: Optional[str] = typer.Option(None, help="Start date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, help="End date YYYY-MM-DD"),
    source: Optional[str] = typer.Option(None, help=" | ".join(SOURCES)),
    out: str = typer.Option("reviews.json", help="Output JSON path"),
    max_pages: str = typer.Option("25", "--max-pages", help="Maximum review pages to fetch"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

    if not company or not start or not end or not source:
        typer.echo(USAGE)
        raise typer.Exit(code=1)
    source_key = source.lower()
    if source_key not in SOURCES:
        typer.echo(f"Unsupported source '{source}'. Options: {', '.join(SOURCES)}", err=True)
        raise typer.Exit(code=1)
    try:
        pages = int(max_pages)
    except ValueError:
        typer.echo(f"Invalid --max-pages '{max_pages}'. Use a positive integer.", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Starting scrape: source={source_key} company='{company}' range={start}..{end}")
    try:
        result = scrape_result(company, start, end, source_key, max_pages=pages, config=load_config())
    except ValidationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except ScraperError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    except Exception as e:
        logging.exception("Unexpected failure")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    try:
        outpath = write_reviews(result.reviews, out)
    except OSError as e:
        typer.echo(f"Error: could not write {out}: {e}", err=True)
        raise typer.Exit(code=2)
    if verbose and result.reviews:
        logging.info("First review: %s", result.reviews[0].model_dump())
    typer.echo(
        f"Wrote {len(result.reviews)} reviews to {outpath} "
        f"({result.meta['raw_reviews_count']} scraped before date filtering)"
    )


if __name__ == "__main__":
    app()
