from datetime import datetime, timezone
from html import escape
from typing import List

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from whatsong.errors import NotFound
from whatsong.playback.offset import Playing, deep_link, now_ms, resolve_offset
from whatsong.schemas import Event

router = APIRouter()

PAGE_CSS = """
body { font-family: system-ui, sans-serif; max-width: 760px; margin: 24px auto; padding: 0 16px; }
.now { font-size: 1.3em; }
.state { color: #16a34a; font-weight: 600; }
.state.finished { color: #64748b; }
.len, .none { color: #64748b; }
ol.history { padding-left: 2.5em; }
ol.history li { margin: 4px 0; }
"""


def fmt_ms(ms: int) -> str:
    try:
        dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return str(ms)
    return dt.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def fmt_duration(seconds: int) -> str:
    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    return f"{h}:{m:02d}:{s:02d}" if h else f"{m}:{s:02d}"


def _song(event: Event, link: str) -> str:
    return (
        f'<a href="{escape(link)}">{escape(event.title)}</a> '
        f'<span class="len">({fmt_duration(event.duration_seconds)})</span>'
    )


def _current_html(current: Event, now: int) -> str:
    playback = resolve_offset(current, now)
    if isinstance(playback, Playing):
        state = f'<span class="state">playing, {fmt_duration(playback.offset_seconds)} in</span>'
    else:
        state = '<span class="state finished">finished</span>'
    return f'<p class="now">{_song(current, deep_link(current, playback))} {state}</p>'


def _history_html(events: List[Event]) -> str:
    if not events:
        return '<p class="none">No songs yet.</p>'
    items = "".join(
        f'<li value="{e.sequence}"><time>{escape(fmt_ms(e.reported_at))}</time> {_song(e, deep_link(e))}</li>'
        for e in reversed(events)
    )
    return f'<ol class="history" reversed>{items}</ol>'


@router.get("/", response_class=HTMLResponse)
def ui_home(request: Request):
    store = request.app.state.store
    now = now_ms()

    try:
        current_html = _current_html(store.current(), now)
    except NotFound:
        current_html = '<p class="none">Nothing has been reported yet.</p>'

    try:
        previous = store.previous()
        previous_html = f"<p>{_song(previous, deep_link(previous))}</p>"
    except NotFound:
        previous_html = '<p class="none">No previous song.</p>'

    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>whatsong</title>
  <style>{PAGE_CSS}</style>
</head>
<body>
  <h1>Now playing</h1>
  {current_html}
  <h2>Previous</h2>
  {previous_html}
  <h2>History <a href="/list/youtube">json</a></h2>
  {_history_html(store.all())}
</body>
</html>
"""
