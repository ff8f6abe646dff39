import re
import uuid
from typing import Callable

KEY_PREFIX = "images/"
DEFAULT_SLUG = "img"
SLUG_WORDS = 3
SLUG_MAX_LENGTH = 30
SHORT_ID_LENGTH = 8

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")

def generate_slug(prompt: str) -> str:
    """Builds a URL-safe slug from the first three words of the prompt."""
    words = prompt.lower().strip().split()[:SLUG_WORDS]
    slug = _INVALID_CHARS.sub("", "-".join(words))
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")
    # truncation can expose a hyphen at the cut
    slug = slug[:SLUG_MAX_LENGTH].rstrip("-")
    return slug or DEFAULT_SLUG

def derive_key(prompt: str, ext: str, id_factory: Callable[[], object] = uuid.uuid4) -> str:
    """Returns images/<slug>-<shortId>.<ext> for a newly generated image."""
    short_id = str(id_factory())[:SHORT_ID_LENGTH]
    return f"{KEY_PREFIX}{generate_slug(prompt)}-{short_id}.{ext}"
