"""Auth endpoints (local identity backend)."""
import ipaddress
import logging

import redis
from redis.exceptions import RedisError
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..config import settings
from ..dependencies import get_identity
from ..domain_errors import DomainError
from ..schemas import SignInRequest, TokenResponse
from ..services.identity import IdentityProvider, LocalIdentityProvider

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1)
    return _redis_client


def _get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _enforce_sign_in_rate_limit(request: Request) -> None:
    ip = _get_client_ip(request)
    key = f"auth:rl:sign-in:ip:{ip}"
    try:
        r = _get_redis()
        attempts = r.incr(key)
        if attempts == 1:
            r.expire(key, 60)
        if attempts > settings.AUTH_SIGN_IN_IP_LIMIT_PER_MINUTE:
            ttl = r.ttl(key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many sign-in attempts. Try again later.",
                headers={"Retry-After": str(ttl if ttl and ttl > 0 else 60)},
            )
    except RedisError:
        # Fail open if Redis is down to avoid total auth outage.
        logger.exception("Redis error during sign-in rate limiting (fail-open)")


@router.post("/sign-in", response_model=TokenResponse)
def sign_in(
    data: SignInRequest,
    request: Request,
    response: Response,
    identity: IdentityProvider = Depends(get_identity),
):
    """Exchange email and password for a bearer token."""
    if not isinstance(identity, LocalIdentityProvider):
        raise DomainError(
            code="SIGN_IN_NOT_SUPPORTED",
            http_status=400,
            message="Sign in with the identity provider's client SDK",
        )
    _enforce_sign_in_rate_limit(request)
    token = identity.sign_in(data.email, data.password)
    # Reduce the chance of caching tokens.
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(access_token=token)
