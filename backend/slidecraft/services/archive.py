"""
Download archive: NN.ext slide images, caption.txt, CREDITS.txt.
"""

import io
import zipfile
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from slidecraft.renderer.background import ImageSource

CAPTION_ORDER = ("medium", "short", "spicy", "long")


def slide_filename(index: int, ext: str) -> str:
    return f"{index:02d}.{ext}"


def build_caption(caption_variants: Optional[Mapping], hashtags: Optional[Sequence[str]]) -> Optional[str]:
    """caption.txt content, or None when there is nothing to write."""
    caption = None
    for key in CAPTION_ORDER:
        value = (caption_variants or {}).get(key)
        if isinstance(value, str) and value.strip():
            caption = value.strip()
            break

    tags = []
    for tag in hashtags or []:
        tag = str(tag).strip().lstrip("#")
        if tag:
            tags.append(f"#{tag}")

    parts = [p for p in (caption, " ".join(tags) if tags else None) if p]
    return "\n\n".join(parts) if parts else None


def build_credits(sources: Iterable[ImageSource]) -> Optional[str]:
    """One line per unique provider:id, in first-seen order."""
    seen = set()
    lines: List[str] = []
    for source in sources:
        if source.key in seen:
            continue
        seen.add(source.key)
        provider = source.provider.capitalize()
        line = f"Photo by {source.author or 'Unknown'} on {provider}"
        if source.url:
            line += f" ({source.url})"
        lines.append(line)
    return "\n".join(lines) + "\n" if lines else None


def build_archive(slides: Sequence[Tuple[int, str, bytes]], caption: Optional[str] = None,
                  credits: Optional[str] = None) -> bytes:
    """Zip (index, ext, bytes) slide images plus the optional text files."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for index, ext, data in slides:
            zf.writestr(slide_filename(index, ext), data)
        if caption:
            zf.writestr("caption.txt", caption)
        if credits:
            zf.writestr("CREDITS.txt", credits)
    return buffer.getvalue()
