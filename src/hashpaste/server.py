# src/hashpaste/server.py
"""Starlette ASGI application: the HTTP face of the paste store.

Routes:
    GET  /                          usage text (HTML-wrapped unless the client is curl)
    GET  /health                    liveness
    GET  /stats                     upload count and retention settings (JSON)
    PUT  /  and  PUT /{filename}    raw-body upload, returns the paste URL
    POST /                          urlencoded form upload (p=<body>, file=<name>)
    GET  /{identifier}[/{filename}] download

The lifecycle manager does all the work; this module maps its results and
errors onto HTTP. Lifecycle calls block on storage, so they run in the
threadpool.

Usage:
    from hashpaste.server import create_app
    from hashpaste.core.config import load_settings

    app = create_app(load_settings())
"""

from __future__ import annotations

import os
from urllib.parse import parse_qs, quote

import jinja2
import jinja2.sandbox
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp

from hashpaste import __version__
from hashpaste.contracts.enums import Tier
from hashpaste.contracts.errors import (
    EmptyPasteError,
    MetadataCorruptError,
    PasteError,
    PasteNotFoundError,
    PasteTooLargeError,
    PasteTooSmallError,
    PasteValidationError,
    StoreUnavailableError,
)
from hashpaste.core.config import HashpasteSettings
from hashpaste.core.lifecycle import Paste, PasteLifecycle
from hashpaste.core.logging import get_logger

__all__ = ["SETTINGS_ENV_VAR", "PasteServer", "app_from_env", "create_app"]

logger = get_logger(__name__)

# Serialized settings handed from `hashpaste serve` to uvicorn worker processes
SETTINGS_ENV_VAR = "_HASHPASTE_SERVE_SETTINGS"

# Form field names used by the browser paste form
FORM_BODY_FIELD = "p"
FORM_FILENAME_FIELD = "file"

# Percent-encoding can triple a form body's size on the wire; field names
# and the filename field ride on top
_FORM_EXPANSION = 3
_FORM_FIELDS_ALLOWANCE = 1024

# Stored pastes are untrusted: never let them run script in our origin
_PASTE_CSP = "default-src 'none'; img-src 'self'; media-src 'self'; style-src 'unsafe-inline'; sandbox"

_USAGE_TEMPLATE = """\
{{ host }}(1)                          HASHPASTE                          {{ host }}(1)

 NAME
     {{ host }} - content-addressed command line pastebin

 SYNOPSIS
     # Upload a file
     curl -T <file> {{ base_url }}

     # Upload command output
     <command> | curl -T - {{ base_url }}

     # Show this page
     curl {{ base_url }}

 DESCRIPTION
     Pastes are created with HTTP PUT (or a POST of the form below). The
     returned URL addresses the paste by the {{ algorithm }} hash of its content,
     {{ encoding }}-encoded and trimmed to {{ id_length }} characters, so uploading
     the same bytes twice returns the same URL.

     Pastes must be between {{ min_size }} and {{ max_size }} bytes. A paste lives for
     {{ origin_ttl }} after upload{% if refresh %}, extended to {{ refreshed_ttl }} each time it is read{% endif %}.

     The X-Content-Hash response header carries the full hash for
     verifying a download.

 EXAMPLES
     $ ps aux | curl -T - {{ base_url }}
       {{ base_url }}/<id>
     $ curl -T notes.md {{ base_url }}
       {{ base_url }}/<id>/notes.md

 STATS
     {{ upload_count }} pastes uploaded. See {{ base_url }}/stats

 hashpaste {{ version }}
"""

_HTML_TEMPLATE = """\
<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>{{ host }} - content-addressed pastebin</title>
  <style>
    body, textarea, button, input { background-color: #000; color: #fff; margin: 0; border-width: 0; }
    textarea { background-color: #212121; width: 100%; height: 90vh; }
    input { background-color: #484848; width: 75%; height: 3vh; }
    button { background-color: #484848; width: 24%; height: 3vh; }
    pre { margin: 1em; }
  </style>
</head>
<body>
  <form action="{{ base_url }}/" method="POST" accept-charset="UTF-8" spellcheck="false">
    <input name="{{ filename_field }}" placeholder="(optional filename)"/><button type="submit">paste</button>
    <textarea name="{{ body_field }}" placeholder="type or paste here"></textarea>
  </form>
  <pre>{{ usage }}</pre>
</body>
</html>
"""

_text_env = jinja2.sandbox.SandboxedEnvironment(autoescape=False, undefined=jinja2.StrictUndefined, keep_trailing_newline=True)
_html_env = jinja2.sandbox.SandboxedEnvironment(autoescape=True, undefined=jinja2.StrictUndefined)
_usage_template = _text_env.from_string(_USAGE_TEMPLATE)
_html_template = _html_env.from_string(_HTML_TEMPLATE)

_ERROR_STATUS: dict[type[PasteError], int] = {
    EmptyPasteError: 400,
    PasteTooSmallError: 406,
    PasteTooLargeError: 413,
    PasteValidationError: 400,
    PasteNotFoundError: 404,
    StoreUnavailableError: 500,
    MetadataCorruptError: 500,
}


def _status_for(exc: PasteError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


def _format_duration(seconds: int) -> str:
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} seconds"


def _is_curl(request: Request) -> bool:
    return request.headers.get("user-agent", "").startswith("curl")


def _host(request: Request) -> str:
    return request.headers.get("host") or request.url.netloc


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the request body, rejecting it as soon as it exceeds limit bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PasteTooLargeError(int(declared), limit)

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PasteTooLargeError(size, limit)
        chunks.append(chunk)
    return b"".join(chunks)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds transport and content-sniffing headers to every response."""

    def __init__(self, app: ASGIApp, *, hsts: bool) -> None:
        super().__init__(app)
        self._hsts = hsts

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        if self._hsts and request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response


class PasteServer:
    """HTTP server wrapping a PasteLifecycle.

    Encapsulates the lifecycle manager and settings, and builds the
    Starlette application with all routes.
    """

    def __init__(self, settings: HashpasteSettings, *, lifecycle: PasteLifecycle | None = None) -> None:
        self._settings = settings
        self._lifecycle = lifecycle if lifecycle is not None else PasteLifecycle.from_settings(settings)
        self._app = self._create_app()

    def _create_app(self) -> Starlette:
        routes = [
            Route("/", self._usage_endpoint, methods=["GET"]),
            Route("/", self._put_endpoint, methods=["PUT"]),
            Route("/", self._post_endpoint, methods=["POST"]),
            Route("/health", self._health_endpoint, methods=["GET"]),
            Route("/stats", self._stats_endpoint, methods=["GET"]),
            Route("/{filename}", self._put_endpoint, methods=["PUT"]),
            Route("/{identifier}", self._read_endpoint, methods=["GET", "HEAD"]),
            Route("/{identifier}/{filename}", self._read_endpoint, methods=["GET", "HEAD"]),
        ]
        return Starlette(
            debug=False,
            routes=routes,
            middleware=[Middleware(SecurityHeadersMiddleware, hsts=self._settings.server.hsts)],
            exception_handlers={PasteError: self._paste_error_handler},
        )

    @property
    def app(self) -> Starlette:
        """Get the Starlette ASGI application."""
        return self._app

    @property
    def lifecycle(self) -> PasteLifecycle:
        return self._lifecycle

    # === Error handling ===

    async def _paste_error_handler(self, request: Request, exc: Exception) -> Response:
        if not isinstance(exc, PasteError):
            raise exc
        status = _status_for(exc)
        if isinstance(exc, PasteNotFoundError):
            return PlainTextResponse(f"{request.url.path} not found.\n", status_code=status)
        if isinstance(exc, PasteValidationError):
            logger.info("paste.rejected", path=request.url.path, error=str(exc))
            return PlainTextResponse(f"{exc}\n", status_code=status)
        logger.error("paste.failed", path=request.url.path, method=request.method, error=str(exc), error_type=type(exc).__name__)
        if isinstance(exc, StoreUnavailableError):
            return PlainTextResponse("write failed, please retry\n", status_code=status)
        return PlainTextResponse("internal error\n", status_code=status)

    # === Endpoint handlers ===

    async def _health_endpoint(self, request: Request) -> JSONResponse:
        """Handle GET /health."""
        return JSONResponse({"status": "healthy", "version": __version__})

    async def _stats_endpoint(self, request: Request) -> JSONResponse:
        """Handle GET /stats."""
        stats = await run_in_threadpool(self._lifecycle.stats)
        return JSONResponse(stats.to_dict())

    async def _usage_endpoint(self, request: Request) -> Response:
        """Handle GET / - man-page style usage text."""
        stats = await run_in_threadpool(self._lifecycle.stats)
        host = _host(request)
        retention = self._settings.retention
        usage = _usage_template.render(
            host=host,
            base_url=f"{request.url.scheme}://{host}",
            algorithm=self._settings.fingerprint.algorithm,
            encoding=self._settings.fingerprint.encoding,
            id_length=stats.id_length,
            min_size=self._settings.limits.min_content_size,
            max_size=self._settings.limits.max_content_size,
            origin_ttl=_format_duration(retention.origin_ttl_seconds),
            refreshed_ttl=_format_duration(retention.refreshed_origin_ttl_seconds),
            refresh=retention.refreshes_origin,
            upload_count=stats.upload_count,
            version=__version__,
        )
        if _is_curl(request):
            return PlainTextResponse(usage)
        page = _html_template.render(
            host=host,
            base_url=f"{request.url.scheme}://{host}",
            usage=usage,
            body_field=FORM_BODY_FIELD,
            filename_field=FORM_FILENAME_FIELD,
        )
        return HTMLResponse(page)

    async def _put_endpoint(self, request: Request) -> Response:
        """Handle PUT / and PUT /{filename} - raw body upload."""
        filename = request.path_params.get("filename") or None
        body = await _read_body(request, self._settings.limits.max_content_size)
        result = await run_in_threadpool(
            self._lifecycle.upload,
            body,
            host=_host(request),
            filename=filename,
            scheme=request.url.scheme,
        )
        return PlainTextResponse(f"{result.url}\n", status_code=201 if result.created else 200)

    async def _post_endpoint(self, request: Request) -> Response:
        """Handle POST / - urlencoded form upload from the usage page."""
        raw = await _read_body(request, self._settings.limits.max_content_size * _FORM_EXPANSION + _FORM_FIELDS_ALLOWANCE)
        form = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
        body = form.get(FORM_BODY_FIELD, [""])[0].encode("utf-8")
        filename = form.get(FORM_FILENAME_FIELD, [""])[0].strip() or None
        result = await run_in_threadpool(
            self._lifecycle.upload,
            body,
            host=_host(request),
            filename=filename,
            scheme=request.url.scheme,
        )
        if not _is_curl(request):
            return RedirectResponse(result.url, status_code=303)
        return PlainTextResponse(f"{result.url}\n", status_code=201 if result.created else 200)

    async def _read_endpoint(self, request: Request) -> Response:
        """Handle GET /{identifier} and GET /{identifier}/{filename}."""
        identifier = request.path_params["identifier"]
        filename = request.path_params.get("filename")
        paste = await run_in_threadpool(self._lifecycle.download, identifier)

        headers = self._paste_headers(paste, filename)
        if request.headers.get("if-none-match") == headers["ETag"]:
            return Response(status_code=304, headers=headers)
        if request.method == "HEAD":
            headers["Content-Length"] = str(len(paste.content))
            return Response(status_code=200, headers=headers, media_type=paste.mime_type)
        return Response(paste.content, status_code=200, headers=headers, media_type=paste.mime_type)

    def _paste_headers(self, paste: Paste, filename: str | None) -> dict[str, str]:
        headers = {
            "ETag": f'"{paste.full_hash.hexdigest}"',
            "X-Content-Hash": str(paste.full_hash),
            "X-Cache": "HIT" if paste.tier is Tier.EDGE else "MISS",
            "Surrogate-Key": self._settings.edge_cache.surrogate_key,
            "Cache-Control": f"public, max-age={self._settings.retention.cache_ttl_seconds}",
            "Content-Security-Policy": _PASTE_CSP,
        }
        if filename:
            headers["Content-Disposition"] = f"inline; filename*=UTF-8''{quote(filename, safe='')}"
        return headers


def create_app(settings: HashpasteSettings, *, lifecycle: PasteLifecycle | None = None) -> Starlette:
    """Create the hashpaste Starlette application."""
    return PasteServer(settings, lifecycle=lifecycle).app


def app_from_env() -> Starlette:
    """Application factory for multi-worker uvicorn.

    Uses the settings serialized by ``hashpaste serve`` when present,
    otherwise loads them from the environment.
    """
    from hashpaste.core.config import load_settings

    serialized = os.environ.get(SETTINGS_ENV_VAR)
    if serialized:
        settings = HashpasteSettings.model_validate_json(serialized)
    else:
        settings = load_settings()

    from hashpaste.core.logging import configure_logging

    configure_logging(json_output=settings.logging.json_output, level=settings.logging.level)
    return create_app(settings)
