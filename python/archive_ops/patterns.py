"""
Wildcard include/exclude patterns.

A pattern is literal text plus ``*`` wildcards. It is converted to a regular
expression by escaping ``.`` and expanding ``*`` to ``.*`` and then searched
(unanchored, case-sensitive) in the path string. If any pattern of a set does
not compile, the whole set matches nothing and a warning is emitted.
"""

import re
import threading
from typing import Callable, Dict, Iterable, Optional, Tuple

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)

# Cache of compiled pattern sets, keyed by the tuple of wildcard patterns
_pattern_cache: Dict[Tuple[str, ...], Optional[re.Pattern]] = {}
_cache_lock = threading.Lock()


def wildcard_to_regex(pattern: str) -> str:
    """Convert a wildcard pattern to its regular-expression source."""
    return pattern.replace(".", "\\.").replace("*", ".*")


def _compile_pattern_set(
    patterns: Tuple[str, ...], warn: Optional[Callable[[str], None]] = None
) -> Optional[re.Pattern]:
    """Compile every pattern into one alternation, or None if the set is unusable."""
    if not patterns:
        return None

    sources = []
    for pattern in patterns:
        source = wildcard_to_regex(pattern)
        try:
            re.compile(source)
        except re.error as e:
            message = (
                f"Invalid pattern '{pattern}': {e}; "
                "this pattern set will match nothing"
            )
            logger.warning("%s", message)
            if warn is not None:
                warn(message)
            return None
        sources.append(f"(?:{source})")

    return re.compile("|".join(sources))


class PatternSet:
    """A set of wildcard patterns; a path matches if any pattern matches."""

    def __init__(
        self,
        patterns: Iterable[str],
        warn: Optional[Callable[[str], None]] = None,
    ):
        self.patterns = tuple(patterns)
        with _cache_lock:
            if self.patterns in _pattern_cache:
                self._regex = _pattern_cache[self.patterns]
                return

        compiled = _compile_pattern_set(self.patterns, warn)
        # Invalid sets are not cached so every use reports the warning again
        if compiled is not None or not self.patterns:
            with _cache_lock:
                _pattern_cache[self.patterns] = compiled
        self._regex = compiled

    @property
    def is_empty(self) -> bool:
        """True when the set can never match (no patterns, or invalid ones)."""
        return self._regex is None

    def matches(self, text: str) -> bool:
        if self._regex is None:
            return False
        return self._regex.search(text) is not None

    def __repr__(self) -> str:
        return f"PatternSet({list(self.patterns)!r})"


def clear_pattern_cache() -> None:
    """Drop cached pattern sets (used by tests)."""
    with _cache_lock:
        _pattern_cache.clear()
