"""
Content Hashing.

Scripts are identified by a digest of their content, never by name.
"""

import hashlib


def generate_hash(content: str) -> str:
    """
    Generate a SHA-256 hash for script content.

    Args:
        content: Script text

    Returns:
        Lowercase hexadecimal digest of the UTF-8 encoded content

    Raises:
        ValueError: If content is empty
    """
    if not content:
        raise ValueError("Content cannot be empty")

    return hashlib.sha256(content.encode("utf-8")).hexdigest()
