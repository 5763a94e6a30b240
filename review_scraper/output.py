# review_scraper/output.py
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from review_scraper.utils import safe_filename, ensure_dir

log = logging.getLogger("output")


def _plain(items: Iterable) -> list:
    return [i.model_dump() if isinstance(i, BaseModel) else i for i in items]


def write_reviews(reviews: Iterable, path: Union[str, Path]) -> str:
    """Write reviews as a JSON array; returns the path written."""
    path = Path(path)
    ensure_dir(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_plain(reviews), f, indent=2, default=str, ensure_ascii=False)
    return str(path)


def write_artifact(directory: Optional[Path], name: str, content) -> Optional[str]:
    """Debug snapshot under ``directory``; no-op when artifacts are disabled.

    Strings are written verbatim, anything else as JSON. Last write wins.
    """
    if directory is None:
        return None
    path = ensure_dir(directory) / safe_filename(name)
    try:
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(_plain(content), indent=2, default=str, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        log.warning("Could not write artifact %s: %s", path, e)
        return None
    log.debug("Wrote artifact %s", path)
    return str(path)
