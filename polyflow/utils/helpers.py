from __future__ import annotations

import re
import uuid
from datetime import datetime


def sanitize_string(data: str) -> str:
    sanitized = "".join(c if c.isalnum() or c in ["-", "_"] else "_" for c in data)
    remove_duplicate_underscores = re.sub(r"_+", "_", sanitized)
    return remove_duplicate_underscores.strip("_")


def generate_unique_id(run_name: str | None = None) -> str:
    """Generates a unique ID for the run, adding a prefix if provided."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    unique_suffix = uuid.uuid4().hex[:6]
    prefix = sanitize_string(run_name) if run_name else "run"
    return f"{prefix}_{timestamp}_{unique_suffix}"


def display_name(name: str) -> str:
    """Turns an identifier like 'parallel_demo' into 'Parallel Demo'."""
    words = re.split(r"[-_\s]+", name.strip())
    return " ".join(word.capitalize() for word in words if word)
