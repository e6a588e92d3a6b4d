"""Prefixed ID and artifact file name generation."""

import time
import uuid


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "usr_", "q_", "rpt_").

    Returns:
        A string like "rpt_a1b2c3d4e5f6a7b8".
    """
    short_uuid = uuid.uuid4().hex[:16]
    return f"{prefix}{short_uuid}"


def artifact_file_name(user_id: str, suffix: str = "report.pdf") -> str:
    """Collision-resistant artifact name: epoch millis, owner, random component.

    The random part keeps two requests from the same user in the same
    millisecond apart.
    """
    millis = time.time_ns() // 1_000_000
    return f"{millis}_{user_id}_{uuid.uuid4().hex[:8]}_{suffix}"
