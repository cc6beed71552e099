"""At-rest encryption for session transcripts."""

import base64
import hashlib
import json
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from ..config import settings


def _derive_key(secret: str) -> bytes:
    # Fernet wants 32 url-safe base64 encoded bytes
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


_fernet = Fernet(_derive_key(settings.ENCRYPTION_KEY))


def encrypt_json(value: Any) -> Optional[str]:
    """Serialize ``value`` to JSON and encrypt it. ``None`` stays ``None``."""
    if value is None:
        return None
    return _fernet.encrypt(json.dumps(value).encode("utf-8")).decode("ascii")


def decrypt_json(token: Optional[str]) -> Any:
    """Reverse of :func:`encrypt_json`. Undecryptable values yield ``None``."""
    if not token:
        return None
    try:
        return json.loads(_fernet.decrypt(token.encode("ascii")).decode("utf-8"))
    except (InvalidToken, ValueError) as e:
        logger.error(f"Failed to decrypt stored transcript: {e}")
        return None
