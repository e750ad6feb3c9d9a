"""HTTP surface for on-demand queries and manual triggers.

Requires FastAPI (install via ``pip install officepeak[server]``).

Routes:

* ``GET /``: liveness text.
* ``GET /history?yyyy-mm=2025-08&format=json|csv``: the month's recorded
  daily peaks.
* ``POST /summary[?yyyy-mm=2025-08]``: build and post the monthly report
  now (current month by default). A webhook failure answers 502.

Example::

    import uvicorn
    from officepeak.server import create_app

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import OfficePeakConfig
from .exceptions import ConfigurationError, NotificationError
from .history import is_valid_month
from .service import make_notifier, post_monthly_summary, query_history, today
from .store import open_store

if TYPE_CHECKING:
    from .service import Notifier
    from .store import KeyValueStore

READY_TEXT = "office-peak worker ready"


def create_app(
    config: OfficePeakConfig | None = None,
    store: KeyValueStore | None = None,
    notifier: Notifier | None = None,
) -> Any:  # fastapi.FastAPI, typed as Any for the optional dependency
    """Create the FastAPI application.

    Args:
        config: Configuration; read from the environment when omitted.
        store: Key-value store; opened from *config* when omitted.
        notifier: Notification sink; built from *config* on first use when
            omitted.

    Raises:
        ImportError: If FastAPI is not installed.
    """
    try:
        import fastapi
        from fastapi import responses
    except ImportError:
        msg = "fastapi is required for create_app(). Install with: pip install officepeak[server]"
        raise ImportError(msg) from None

    cfg = config if config is not None else OfficePeakConfig.from_env()
    kv = store if store is not None else open_store(cfg)

    app: Any = fastapi.FastAPI(title="officepeak")

    @app.get("/", response_class=responses.PlainTextResponse)
    def ready() -> str:
        return READY_TEXT

    @app.get("/history")
    def history(
        month: str | None = fastapi.Query(None, alias="yyyy-mm"),
        fmt: str = fastapi.Query("json", alias="format"),
    ) -> Any:
        result = query_history(kv, month, fmt)
        return responses.Response(content=result.body, status_code=result.status, media_type=result.content_type)

    @app.post("/summary")
    def summary(month: str | None = fastapi.Query(None, alias="yyyy-mm")) -> Any:
        target = month or today(cfg.tz).strftime("%Y-%m")
        if not is_valid_month(target):
            return responses.JSONResponse({"error": f"Invalid month {target!r}, expected YYYY-MM"}, status_code=400)
        try:
            sink = notifier if notifier is not None else make_notifier(cfg)
        except ConfigurationError as exc:
            return responses.JSONResponse({"error": str(exc)}, status_code=500)
        try:
            posted = post_monthly_summary(kv, sink, target)
        except NotificationError as exc:
            return responses.JSONResponse({"error": str(exc)}, status_code=502)
        return {"month": target, "posted": posted is not None, "days": posted.days if posted else 0}

    return app
