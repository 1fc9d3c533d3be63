import re
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from .config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


def generate_id(prefix: str = "") -> str:
    """Random identifier such as ``adj_3f9c0b12a4d7``."""
    token = uuid.uuid4().hex[:12]
    return f"{prefix}_{token}" if prefix else token


def utcnow() -> datetime:
    # Naive UTC so values compare cleanly against SQLite DATETIME columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def slugify(text: str) -> str:
    slug = str(text).strip().lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w\-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def parse_pagination(page: Optional[int], limit: Optional[int], default_limit: int = DEFAULT_PAGE_SIZE) -> Tuple[int, int, int]:
    """Clamp page/limit into a usable range and return (page, limit, offset)."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or default_limit))
    return page, limit, (page - 1) * limit


def parse_order(order: Optional[str], default: str = "asc") -> str:
    value = (order or default).lower()
    return "desc" if value == "desc" else "asc"


def sanitize_search(query: Optional[str]) -> str:
    """Strip LIKE wildcards from user supplied search text."""
    if not query:
        return ""
    return re.sub(r"[%_]", "", str(query).strip())
