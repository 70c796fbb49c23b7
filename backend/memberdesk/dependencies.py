"""Request-scoped access to services owned by the application lifespan."""
from fastapi import Request

from .services.document_store import DocumentStore
from .services.identity import IdentityProvider
from .services.member_cache import MemberCache
from .use_cases.layouts import LayoutEditor


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_member_cache(request: Request) -> MemberCache:
    return request.app.state.member_cache


def get_layout_editors(request: Request) -> dict[str, LayoutEditor]:
    return request.app.state.layout_editors
