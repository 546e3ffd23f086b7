# clinicslots/core/middleware.py
import logging
import re
import time
from typing import Iterable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("clinicslots.requests")

ACTOR_HEADER = "x-actor"


def _is_quiet(path: str, quiet: Iterable[re.Pattern[str]]) -> bool:
    return any(p.match(path) for p in quiet)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request context:
      - Resolves the acting user from the X-Actor header into request.state.actor
        ("system" when absent). Authentication happens upstream.
      - Logs method, path, status and duration; probe paths are not logged.
    """

    def __init__(self, app, *, quiet_paths: Optional[List[re.Pattern[str]]] = None):
        super().__init__(app)
        self.quiet_paths = quiet_paths or [
            re.compile(r"^.*/health(/db)?$"),
            re.compile(r"^/docs$"),
            re.compile(r"^/openapi\.json$"),
        ]

    async def dispatch(self, request: Request, call_next):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        request.state.actor = actor or "system"

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not _is_quiet(request.url.path, self.quiet_paths):
            logger.info(
                "%s %s -> %d in %.1fms (actor=%s)",
                request.method, request.url.path, response.status_code,
                elapsed_ms, request.state.actor,
            )
        return response
