"""
Actor resolution for mutating requests.

Authentication itself is delegated; this module only turns a bearer token
into the actor id recorded against auction actions.
"""

import logging
from typing import Dict, Optional

from fastapi import Header, HTTPException

from .. import config
from .errors import UnauthorizedError

logger = logging.getLogger(__name__)


def resolve_actor(authorization: Optional[str], tokens: Optional[Dict[str, str]] = None) -> str:
    """
    Map an Authorization header to an actor id.

    Args:
        authorization: Raw header value ("Bearer <token>")
        tokens: token -> actor map; empty accepts any token as its own actor id

    Raises:
        UnauthorizedError: Missing, malformed or unknown token
    """
    if tokens is None:
        tokens = config.API_TOKENS

    if not authorization:
        raise UnauthorizedError("No authorization token provided", reason='missing_token')

    scheme, _, token = authorization.partition(' ')
    token = token.strip()
    if scheme.lower() != 'bearer' or not token:
        raise UnauthorizedError("Authorization must be 'Bearer <token>'", reason='malformed_token')

    if not tokens:
        return token

    actor = tokens.get(token)
    if actor is None:
        raise UnauthorizedError("Invalid or expired token", reason='invalid_token')
    return actor


def require_actor(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency returning the authenticated actor id."""
    try:
        return resolve_actor(authorization)
    except UnauthorizedError as e:
        logger.warning(f"Rejected request: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
