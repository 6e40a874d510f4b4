"""Storage key derivation.

Keys are an optional classification prefix, a random identifier from the
``secrets`` CSPRNG and a fixed extension.
"""

import secrets
from typing import Optional

from vidshelf.modules.upload.models import Classification

# 128 bits is the floor for key randomness
MIN_KEY_BYTES = 16


def normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


def extension_for_media_type(media_type: str) -> str:
    """Map ``type/subtype`` to ``.subtype``, e.g. ``image/jpeg`` -> ``.jpeg``."""
    _, _, subtype = media_type.partition("/")
    return normalize_extension(subtype)


def generate_storage_key(
    classification: Optional[Classification] = None,
    extension: str = ".mp4",
    nbytes: int = MIN_KEY_BYTES,
    urlsafe: bool = False,
) -> str:
    """Generate a storage key.

    Args:
        classification: Adds ``landscape/``, ``portrait/`` or ``other/`` when set
        extension: File extension, with or without the leading dot
        nbytes: Random bytes in the identifier, at least 16
        urlsafe: Encode as unpadded base64url instead of lowercase hex

    Returns:
        e.g. ``landscape/3f0c...9a.mp4``
    """
    if nbytes < MIN_KEY_BYTES:
        raise ValueError(f"nbytes must be at least {MIN_KEY_BYTES}, got {nbytes}")

    prefix = classification.prefix if classification is not None else ""
    if urlsafe:
        identifier = secrets.token_urlsafe(nbytes)
    else:
        identifier = secrets.token_hex(nbytes)

    return f"{prefix}{identifier}{normalize_extension(extension)}"
