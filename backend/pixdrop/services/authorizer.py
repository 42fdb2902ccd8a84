"""
Pixdrop Backend — API Key Authorizer
=====================================

What:  Binary allow/deny check of a caller-supplied key against the one
       process-wide secret. There is no per-image scoping: the key gates
       uploads and deletions, the delete token then picks the image.
How:   Full-value comparison with secrets.compare_digest on UTF-8 bytes.
Who:   Constructed once (dependencies.py) and injected into ImageService.

Empty secret:
    With no secret configured, an empty supplied key would trivially equal it.
    That is denied unless the authorizer is built with allow_empty=True
    (ALLOW_EMPTY_API_KEY), which keeps the "empty matches empty" behavior.
"""

import logging
import secrets

from pixdrop.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class ApiKeyAuthorizer:
    """Compares supplied API keys against a fixed secret."""

    def __init__(self, secret: str, allow_empty: bool = False):
        self._secret = secret.encode("utf-8")
        self.allow_empty = allow_empty

    @property
    def locked(self) -> bool:
        """True when no key can ever be accepted (empty secret, not allowed)."""
        return not self._secret and not self.allow_empty

    def is_allowed(self, supplied: str) -> bool:
        if self.locked:
            return False
        return secrets.compare_digest(supplied.encode("utf-8"), self._secret)

    def authorize(self, supplied: str) -> None:
        """
        Raises:
            UnauthorizedError: the supplied key does not match.
        """
        if not self.is_allowed(supplied):
            raise UnauthorizedError(
                context={"reason": "locked" if self.locked else "mismatch"},
            )
