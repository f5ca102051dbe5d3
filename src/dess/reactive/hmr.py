"""Live-reload client: the browser side of the reload channel.

Pages rendered in dev mode load ``/hmr.js`` from their ``<head>``.  The
script opens an ``EventSource`` on ``/__dess/events`` and reloads the page
when a ``{"type": "refresh"}`` message arrives.  When the connection
drops (the dev server restarted, for instance) it reconnects with
exponential backoff and reloads once the server answers again.
"""

from __future__ import annotations

# Well-known paths served by the dev app.
HMR_SCRIPT_PATH = "/hmr.js"
EVENTS_PATH = "/__dess/events"

HMR_SCRIPT_TAG = f'<script src="{HMR_SCRIPT_PATH}" type="module"></script>'

# Reconnect backoff bounds, in milliseconds.
RECONNECT_INITIAL_MS = 500
RECONNECT_MAX_MS = 5000

HMR_CLIENT = f"""\
// dess live reload
const EVENTS_URL = "{EVENTS_PATH}";
const INITIAL_DELAY = {RECONNECT_INITIAL_MS};
const MAX_DELAY = {RECONNECT_MAX_MS};

let delay = INITIAL_DELAY;
let dropped = false;

function connect() {{
  const source = new EventSource(EVENTS_URL);

  source.onopen = () => {{
    delay = INITIAL_DELAY;
    if (dropped) {{
      location.reload();
    }}
  }};

  source.onmessage = (event) => {{
    let message;
    try {{
      message = JSON.parse(event.data);
    }} catch (_) {{
      return;
    }}
    if (message.type === "refresh") {{
      location.reload();
    }}
  }};

  source.onerror = () => {{
    source.close();
    dropped = true;
    setTimeout(connect, delay);
    delay = Math.min(delay * 2, MAX_DELAY);
  }};
}}

connect();
"""


def inject_live_reload(body: str) -> str:
    """Insert the live-reload script tag into an HTML document.

    The tag goes just before ``</head>``; documents without a head get it
    prepended.  Already-injected documents are returned unchanged.
    """
    if HMR_SCRIPT_TAG in body:
        return body
    idx = body.find("</head>")
    if idx == -1:
        return HMR_SCRIPT_TAG + "\n" + body
    return body[:idx] + HMR_SCRIPT_TAG + "\n" + body[idx:]
