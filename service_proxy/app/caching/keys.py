"""
Cache key builders.

Every key starts with the adapter prefix so different sources never collide.
"""

import json
from typing import Iterable, Mapping, Tuple, Union


def summary_key(title: str) -> str:
    return f"wiki:{title}"


def feed_key(url: str) -> str:
    return f"rss:{url}"


def search_key(query: str) -> str:
    return f"ddg:{query}"


def passthrough_key(params: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> str:
    """
    Build a key for a raw passthrough query that ignores the order of
    distinct parameter names.

    Pairs are ordered by name only. Repeated names keep their request order,
    since the upstream resolves them positionally.
    """
    pairs = params.items() if isinstance(params, Mapping) else params
    normalized = sorted(((str(name), str(value)) for name, value in pairs), key=lambda pair: pair[0])
    return "wikiapi:" + json.dumps(normalized, separators=(",", ":"), ensure_ascii=False)
