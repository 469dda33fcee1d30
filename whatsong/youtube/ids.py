import re

from whatsong.errors import InvalidSourceUrl

VIDEO_ID_LEN = 11

# Host/scheme are case-insensitive; the id itself is matched case-sensitively.
VIDEO_URL_RE = re.compile(
    r"^(?i:https?://)"
    r"(?:"
    r"(?i:youtu\.be)/"
    r"|(?i:(?:www\.|m\.|music\.)?youtube\.com)/[^#]*?[?&]v="
    r")"
    r"(?P<id>[A-Za-z0-9_-]{11})"
)


def extract_video_id(url: str) -> str:
    """
    Pull the 11-char video id out of a youtu.be short link or a youtube.com ?v= link.
    """
    u = (url or "").strip()
    m = VIDEO_URL_RE.match(u)
    if not m:
        raise InvalidSourceUrl(url)
    return m.group("id")
