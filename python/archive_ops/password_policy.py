"""
Secret resolution for archive encryption.
"""

import secrets
import string
from datetime import datetime
from typing import Callable, Optional

from colored_logger import get_colored_logger
from .errors import PasswordError, PasswordMismatchError
from .models import PasswordMode

logger = get_colored_logger(__name__)

RANDOM_SECRET_LENGTH = 16
RANDOM_SECRET_ALPHABET = string.ascii_letters + string.digits
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def generate_random_secret(length: int = RANDOM_SECRET_LENGTH) -> str:
    """Return ``length`` characters drawn uniformly from [A-Za-z0-9]."""
    return "".join(secrets.choice(RANDOM_SECRET_ALPHABET) for _ in range(length))


def timestamp_secret(now: Optional[datetime] = None) -> str:
    """Local time as YYYYMMDDhhmmss. Low entropy, meant for demos only."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def confirm_secret(secret: str, confirmation: str) -> str:
    """Return the secret if both entries match, else raise PasswordMismatchError."""
    if secret != confirmation:
        raise PasswordMismatchError("Passwords do not match")
    return secret


def resolve_secret(
    mode,
    preset_secret: Optional[str] = None,
    confirmation: Optional[str] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Optional[str]:
    """
    Resolve the secret for one run according to ``mode``.

    Args:
        mode: PasswordMode (or its string value)
        preset_secret: Secret already collected by the front end (manual mode)
        confirmation: Second entry of the secret; checked when given
        clock: Source of the current local time for timestamp mode

    Returns:
        The secret, or None when archives are written unencrypted

    Raises:
        PasswordMismatchError: confirmation differs from the preset secret
        PasswordError: manual mode without any secret
    """
    mode = PasswordMode.parse(mode)

    if mode is PasswordMode.RANDOM:
        secret = generate_random_secret()
        logger.info("Generated a random password")
        logger.debug("Random password: %s", secret)
        return secret

    if mode is PasswordMode.MANUAL:
        if preset_secret is None:
            raise PasswordError("Manual password mode requires a password")
        if confirmation is not None:
            confirm_secret(preset_secret, confirmation)
        if not preset_secret:
            raise PasswordError("Manual password must not be empty")
        logger.info("Using manually entered password")
        return preset_secret

    if mode is PasswordMode.TIMESTAMP:
        secret = timestamp_secret(clock())
        logger.info("Using timestamp password")
        logger.debug("Timestamp password: %s", secret)
        return secret

    logger.info("Password mode 'none': archives will not be encrypted")
    return None
