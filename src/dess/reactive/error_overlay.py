"""Dev-mode error overlay: renders uncaught exceptions as a red box page.

Only installed by ``dess dev``.  HTTP errors (404 and friends) pass through
so the not-found page still works.
"""

from __future__ import annotations

import html
import linecache
import logging
import traceback
from typing import TYPE_CHECKING

from chirp.errors import HTTPError
from chirp.http.response import Response

if TYPE_CHECKING:
    from chirp.http.request import Request
    from chirp.http.response import SSEResponse, StreamingResponse
    from chirp.middleware.protocol import Next

    type AnyResponse = Response | StreamingResponse | SSEResponse

logger = logging.getLogger("dess.server")


# ---------------------------------------------------------------------------
# Error page template (inline CSS, works even if the output tree is broken)
# ---------------------------------------------------------------------------

_ERROR_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>500 Internal Server Error</title>
<style>
*,*::before,*::after{{box-sizing:border-box}}
body{{margin:0;font-family:ui-monospace,SFMono-Regular,Menlo,Monaco,Consolas,monospace;
  background:#fff;color:#1f2328;line-height:1.6}}
.redbox{{max-width:860px;margin:2rem auto;padding:0 1.5rem}}
.redbox header{{background:#cc0000;color:#fff;border-radius:8px 8px 0 0;padding:1rem 1.5rem}}
.redbox header h1{{margin:0;font-size:1rem;font-weight:600}}
.redbox .message{{margin:0;padding:1rem 1.5rem;background:#fff0f0;border:1px solid #cc0000;
  border-top:0;color:#8b0000;word-break:break-word}}
.source{{margin-top:1.5rem;background:#f6f8fa;border:1px solid #d0d7de;border-radius:8px;
  padding:1rem 0;overflow-x:auto}}
.source .file{{padding:0 1.25rem;margin-bottom:0.75rem;font-size:0.8rem;color:#57606a}}
.source pre{{margin:0;padding:0;font-size:0.85rem}}
.source .line{{display:block;padding:0 1.25rem;white-space:pre}}
.source .line.error-line{{background:#ffebe9;border-left:3px solid #cc0000}}
.source .line .num{{display:inline-block;width:3.5rem;color:#8c959f;
  text-align:right;padding-right:1rem;user-select:none}}
.trace{{margin-top:1.5rem;background:#f6f8fa;border:1px solid #d0d7de;border-radius:8px;
  padding:1rem 1.25rem;font-size:0.8rem;overflow-x:auto;white-space:pre;color:#57606a}}
</style>
</head>
<body>
<div class="redbox">
  <header><h1>{error_type}</h1></header>
  <p class="message">{error_message}</p>
  {source_section}
  <div class="trace">{stack_trace}</div>
</div>
</body>
</html>
"""


def _extract_source_context(
    filename: str,
    lineno: int,
    context: int = 5,
) -> str:
    """Read source lines around the error and render as HTML."""
    if not filename or lineno <= 0:
        return ""

    start = max(1, lineno - context)
    end = lineno + context

    lines_html: list[str] = []
    for i in range(start, end + 1):
        line = linecache.getline(filename, i)
        if not line and i > lineno:
            break
        escaped = html.escape(line.rstrip())
        cls = ' class="line error-line"' if i == lineno else ' class="line"'
        lines_html.append(f'<span{cls}><span class="num">{i}</span>{escaped}</span>')

    if not lines_html:
        return ""

    return (
        f'<div class="source">'
        f'<div class="file">{html.escape(filename)}:{lineno}</div>'
        f'<pre>{"".join(lines_html)}</pre>'
        f"</div>"
    )


def _extract_error_location(exc: BaseException) -> tuple[str, int]:
    """Innermost frame of the traceback as ``(filename, lineno)``."""
    tb = exc.__traceback__
    if tb is None:
        return "", 0

    while tb.tb_next is not None:
        tb = tb.tb_next

    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def render_error_page(exc: BaseException) -> str:
    """Render the red box page for *exc*."""
    stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    filename, lineno = _extract_error_location(exc)

    return _ERROR_PAGE.format(
        error_type=html.escape(type(exc).__qualname__),
        error_message=html.escape(str(exc)),
        source_section=_extract_source_context(filename, lineno),
        stack_trace=html.escape(stack_trace),
    )


async def error_overlay_middleware(request: Request, next: Next) -> AnyResponse:
    """Chirp middleware turning uncaught exceptions into a 500 red box page."""
    try:
        return await next(request)
    except HTTPError:
        raise
    except Exception as exc:
        logger.exception("Error serving %s", request.path)
        return Response(
            body=render_error_page(exc),
            status=500,
            content_type="text/html; charset=utf-8",
        )
