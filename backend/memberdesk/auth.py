"""Authentication of console requests against the identity provider."""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from .dependencies import get_identity, get_store
from .services.document_store import DocumentStore
from .domain_errors import DomainError
from .services.identity import IdentityError, IdentityProvider, InvalidTokenError
from .use_cases.admins import ADMINS_COLLECTION

logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer()


def get_current_admin_uid(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
) -> str:
    """Verify the bearer token and require an admin profile for its account."""
    try:
        uid = identity.verify_token(credentials.credentials)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except IdentityError as exc:
        logger.error("Token verification unavailable: %s", exc)
        raise DomainError(
            code="IDENTITY_UNAVAILABLE",
            http_status=503,
            message="The identity provider could not be reached. Please try again.",
        ) from exc

    # Member accounts live at the same provider; only admins may use the console.
    if store.get(ADMINS_COLLECTION, uid) is None:
        logger.warning("Console access denied for non-admin uid=%s", uid)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return uid
