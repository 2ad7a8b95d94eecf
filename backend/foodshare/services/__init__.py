"""Service layer: built once per app and reached through ``get_services()``."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import Flask, current_app

from .claims import ClaimLifecycle
from .handover import HandoverService
from .messages import MessageService
from .notifications import NotificationService
from .posts import PostService
from .ratings import RatingService
from .users import UserService

EXTENSION_KEY = "foodshare.services"


@dataclass
class Services:
    notifications: NotificationService
    claims: ClaimLifecycle
    handover: HandoverService
    ratings: RatingService
    messages: MessageService
    posts: PostService
    users: UserService


def build_services(session, config) -> Services:
    notifications = NotificationService(session)
    claims = ClaimLifecycle(
        session,
        notifications,
        single_active_claim=bool(config.get("SINGLE_ACTIVE_CLAIM_PER_POST", True)),
    )
    handover = HandoverService(
        session,
        claims,
        code_length=int(config.get("HANDOVER_CODE_LENGTH", 6)),
        ttl=timedelta(hours=int(config.get("HANDOVER_CODE_TTL_HOURS", 24))),
    )
    return Services(
        notifications=notifications,
        claims=claims,
        handover=handover,
        ratings=RatingService(session, notifications),
        messages=MessageService(session, claims, notifications),
        posts=PostService(
            session,
            claims,
            default_expiry=timedelta(hours=int(config.get("POST_DEFAULT_EXPIRY_HOURS", 48))),
        ),
        users=UserService(session),
    )


def init_services(app: Flask, session) -> Services:
    services = build_services(session, app.config)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
