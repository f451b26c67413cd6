from __future__ import annotations

import logging

HEALTH_PATHS: tuple[str, ...] = ("/healthz", "/readyz")


class SkipHealthzFilter(logging.Filter):
    """Keep load-balancer health checks out of the console log."""

    def __init__(self, prefixes: tuple[str, ...] = HEALTH_PATHS) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        for candidate in _record_paths(record):
            if candidate.startswith(self.prefixes):
                return False
        message = record.getMessage()
        return not any(prefix in message for prefix in self.prefixes)


def _record_paths(record: logging.LogRecord) -> list[str]:
    # django.request attaches the request; django.server passes it in args.
    sources = [getattr(record, "request", None)]
    if isinstance(record.args, tuple):
        sources.extend(record.args)

    paths: list[str] = []
    for obj in sources:
        path = getattr(obj, "path", None) or getattr(obj, "path_info", None)
        if isinstance(path, str) and path:
            paths.append(path)
    return paths
