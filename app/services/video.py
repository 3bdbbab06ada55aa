"""
Video URL recognition for material and homepage video blocks.

Only URL pattern extraction: YouTube (watch, youtu.be, embed, shorts) and
Vimeo numeric ids.
"""
import re
from dataclasses import dataclass
from typing import Optional

YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/shorts/([^&\n?#]+)"),
]
VIMEO_PATTERN = re.compile(r"vimeo\.com/(\d+)")

EMBED_TEMPLATES = {
    "youtube": "https://www.youtube.com/embed/{id}",
    "vimeo": "https://player.vimeo.com/video/{id}",
}


@dataclass(frozen=True)
class VideoRef:
    provider: str
    video_id: str

    @property
    def embed_url(self) -> str:
        return EMBED_TEMPLATES[self.provider].format(id=self.video_id)


def extract_video(url: Optional[str]) -> Optional[VideoRef]:
    if not url:
        return None
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return VideoRef(provider="youtube", video_id=match.group(1))
    match = VIMEO_PATTERN.search(url)
    if match:
        return VideoRef(provider="vimeo", video_id=match.group(1))
    return None


def embed_url(url: Optional[str]) -> Optional[str]:
    ref = extract_video(url)
    return ref.embed_url if ref else None
