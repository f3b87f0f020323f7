"""
Backend-bound request classification.
"""

from typing import Iterable, Optional, Tuple

from shared.config import DEFAULT_BACKEND_PATH_PREFIXES, trim_trailing_slashes


# Characters allowed right after the backend base in an absolute URL
BASE_BOUNDARY_CHARS = ("/", "?", "#")


class RequestClassifier:
    """Decides whether a request target should carry an Authorization header.

    Absolute URLs qualify only when they start with the configured backend
    base followed by a path, query, fragment or nothing. Relative URLs qualify only when their path starts with an
    allowlisted API prefix, so same-origin asset and document fetches never
    see credentials.
    """

    def __init__(self, api_base_url: Optional[str], path_prefixes: Optional[Iterable[str]] = None):
        self.api_base_url = trim_trailing_slashes(api_base_url)
        prefixes = DEFAULT_BACKEND_PATH_PREFIXES if path_prefixes is None else path_prefixes
        self.path_prefixes: Tuple[str, ...] = tuple(prefixes)

    def is_backend_bound(self, url) -> bool:
        raw = str(url or "")
        if not raw:
            return False

        if raw.startswith("/"):
            return raw.startswith(self.path_prefixes)

        if not self.api_base_url or not raw.startswith(self.api_base_url):
            return False
        rest = raw[len(self.api_base_url):]
        return not rest or rest[0] in BASE_BOUNDARY_CHARS
