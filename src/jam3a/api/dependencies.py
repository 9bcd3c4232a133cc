"""API dependency providers."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from jam3a.core.settings import Settings, get_settings
from jam3a.db.session import get_db_session
from jam3a.domain.authorization import Actor, AuthorizationPolicy
from jam3a.domain.errors import UnauthorizedError
from jam3a.repositories.category_repository import CategoryRepository
from jam3a.repositories.deal_repository import DealRepository
from jam3a.repositories.product_repository import ProductRepository
from jam3a.repositories.user_repository import UserRepository
from jam3a.services.catalog_service import CatalogService
from jam3a.services.deal_join_service import DealJoinService
from jam3a.services.deal_service import DealService
from jam3a.services.notification_service import (
    NotificationService,
    build_notification_dispatcher,
)


def get_authorization_policy() -> AuthorizationPolicy:
    return AuthorizationPolicy()


def get_current_actor(
    session: Annotated[Session, Depends(get_db_session)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve the authenticated user forwarded by the gateway."""

    if not x_user_id:
        raise UnauthorizedError(message="Authentication required.")
    try:
        user_id = UUID(x_user_id)
    except ValueError as exc:
        raise UnauthorizedError(message="Invalid user identity.") from exc

    user = UserRepository(session).get_active(user_id)
    if user is None:
        raise UnauthorizedError(message="User not found or inactive.")
    return Actor.from_user(user)


def get_deal_service(
    session: Annotated[Session, Depends(get_db_session)],
    policy: Annotated[AuthorizationPolicy, Depends(get_authorization_policy)],
) -> DealService:
    """Build deal service with per-request session."""

    return DealService(
        deal_repository=DealRepository(session),
        category_repository=CategoryRepository(session),
        session=session,
        policy=policy,
    )


def get_deal_join_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> DealJoinService:
    """Build join service with per-request session."""

    return DealJoinService(
        deal_repository=DealRepository(session),
        product_repository=ProductRepository(session),
        session=session,
    )


def get_catalog_service(
    session: Annotated[Session, Depends(get_db_session)],
    policy: Annotated[AuthorizationPolicy, Depends(get_authorization_policy)],
) -> CatalogService:
    """Build catalog service with per-request session."""

    return CatalogService(
        category_repository=CategoryRepository(session),
        product_repository=ProductRepository(session),
        session=session,
        policy=policy,
    )


def get_notification_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> NotificationService:
    return NotificationService(build_notification_dispatcher(settings))
