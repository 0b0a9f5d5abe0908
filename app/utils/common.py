# app/utils/common.py
import os
import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def sanitize_filename(name: str, default_name: str = "unnamed_document", max_length: int = 100) -> str:
    if not name:
        name = default_name

    name = str(name)
    # Characters invalid on Windows/Linux/MacOS
    name = re.sub(r'[<>:"/\\|?*]', '_', name)
    name = re.sub(r'[^\w\s.-]', '', name)
    name = re.sub(r'[-\s]+', '-', name).strip('-_')

    base, ext = os.path.splitext(name)
    if len(base) > max_length:
        base = base[:max_length]

    name = base + ext
    if not name or name == ext:
        name = default_name
        if ext and default_name != "unnamed_document":
            name = default_name.split('.')[0] + ext
    return name


def compact_text(text: Optional[str]) -> str:
    """Collapse newlines and runs of whitespace in spoken or typed input."""
    if not text:
        return ""
    text = text.replace('\n', ' ').replace('\r', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()
