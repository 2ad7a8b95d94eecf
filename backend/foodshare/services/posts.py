from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, or_

from ..errors import InvalidInput, InvalidState, NotFound
from ..models.claim import Claim
from ..models.food_post import EXPIRABLE_STATUSES, FoodPost, FoodPostImage
from ..timeutil import as_utc, utcnow
from . import policy
from .claims import ClaimLifecycle
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
EDITABLE_FIELDS = ("title", "description", "quantity", "category", "dietary", "latitude", "longitude", "expiry_time")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dphi = p2 - p1
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    return sorted(set(tags or []))


class PostService:
    def __init__(self, session, claims: ClaimLifecycle, default_expiry: timedelta = timedelta(hours=48)):
        self.session = session
        self.claims = claims
        self.default_expiry = default_expiry

    def get(self, post_id: int) -> FoodPost:
        post = self.session.get(FoodPost, post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    def _owned(self, post_id: int, user_id: int, message: str) -> FoodPost:
        post = self.get(post_id)
        policy.require_post_owner(post, user_id, message)
        return post

    def create(self, owner_id: int, data: Dict[str, Any]) -> FoodPost:
        now = utcnow()
        expiry = as_utc(data.get("expiry_time")) or now + self.default_expiry
        if expiry <= now:
            raise InvalidInput("Expiry time must be in the future")
        with UnitOfWork(self.session):
            post = FoodPost(
                user_id=owner_id,
                type=data["type"],
                title=data["title"],
                description=data.get("description"),
                quantity=data.get("quantity"),
                category=data["category"],
                dietary=_normalize_tags(data.get("dietary")),
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
                expiry_time=expiry,
                status="available",
            )
            self.session.add(post)
        logger.info("Post %s created by user %s", post.id, owner_id)
        return post

    def list(
        self,
        type_: Optional[str] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        categories: Optional[List[str]] = None,
        dietary: Optional[List[str]] = None,
        search: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        distance_km: Optional[float] = None,
        expiry_within_days: Optional[float] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[FoodPost]:
        now = utcnow()
        q = self.session.query(FoodPost)
        if type_:
            q = q.filter(FoodPost.type == type_)
        if user_id is not None:
            q = q.filter(FoodPost.user_id == user_id)
        if status == "expired":
            # Stored as expired, or lapsed without anyone writing it back yet
            q = q.filter(
                or_(
                    FoodPost.status == "expired",
                    and_(FoodPost.status.in_(EXPIRABLE_STATUSES), FoodPost.expiry_time <= now),
                )
            )
        elif status in EXPIRABLE_STATUSES:
            q = q.filter(FoodPost.status == status, FoodPost.expiry_time > now)
        elif status:
            q = q.filter(FoodPost.status == status)
        if categories:
            q = q.filter(FoodPost.category.in_(categories))
        if search:
            term = f"%{search}%"
            q = q.filter(or_(FoodPost.title.ilike(term), FoodPost.description.ilike(term)))
        if expiry_within_days:
            q = q.filter(
                FoodPost.expiry_time >= now,
                FoodPost.expiry_time <= now + timedelta(days=expiry_within_days),
            )
        q = q.order_by(FoodPost.created_at.desc(), FoodPost.id.desc())

        geo = latitude is not None and longitude is not None and distance_km is not None
        if not dietary and not geo:
            return q.limit(limit).offset(offset).all()

        # Dietary tags live in a JSON column and distance needs trigonometry: filter in Python
        wanted = set(dietary or [])
        rows = []
        for post in q.all():
            if wanted and not wanted.issubset(set(post.dietary or [])):
                continue
            if geo:
                if post.latitude is None or post.longitude is None:
                    continue
                if haversine_km(latitude, longitude, post.latitude, post.longitude) > distance_km:
                    continue
            rows.append(post)
        return rows[offset:offset + limit]

    def update(self, post_id: int, user_id: int, changes: Dict[str, Any]) -> FoodPost:
        with UnitOfWork(self.session) as uow:
            post = self._owned(post_id, user_id, "You can only update your own posts")
            post = self.claims.lock_post(post.id)
            if post.effective_status() not in EXPIRABLE_STATUSES:
                raise InvalidState(f"A {post.effective_status()} post can no longer be changed")

            for field in EDITABLE_FIELDS:
                if field not in changes:
                    continue
                value = changes[field]
                if field == "dietary":
                    value = _normalize_tags(value)
                elif field == "expiry_time":
                    value = as_utc(value)
                    if value is None or value <= utcnow():
                        raise InvalidInput("Expiry time must be in the future")
                setattr(post, field, value)

            if changes.get("status") == "cancelled":
                cancelled = self.claims.cancel_for_post(uow, post)
                post.status = "cancelled"
                logger.info("Post %s cancelled; %d claim(s) cancelled", post.id, cancelled)
        return post

    def delete(self, post_id: int, user_id: int) -> None:
        with UnitOfWork(self.session):
            post = self._owned(post_id, user_id, "You can only delete your own posts")
            settled = self.session.query(Claim).filter(
                Claim.post_id == post.id,
                Claim.status.in_(("approved", "in_progress", "completed")),
            ).first()
            if settled is not None:
                raise InvalidState("Posts with an accepted exchange cannot be deleted; cancel the post instead")
            self.session.delete(post)
        logger.info("Post %s deleted by owner", post_id)

    # ----- images --------------------------------------------------------

    def add_image(self, post_id: int, user_id: int, image_url: str, thumb_url: Optional[str] = None) -> FoodPostImage:
        with UnitOfWork(self.session):
            post = self._owned(post_id, user_id, "You can only add images to your own posts")
            image = FoodPostImage(post_id=post.id, image_url=image_url, thumb_url=thumb_url)
            self.session.add(image)
        return image

    def list_images(self, post_id: int) -> List[FoodPostImage]:
        post = self.get(post_id)
        return list(post.images)

    def delete_image(self, post_id: int, image_id: int, user_id: int) -> None:
        with UnitOfWork(self.session):
            self._owned(post_id, user_id, "You can only delete images from your own posts")
            image = self.session.get(FoodPostImage, image_id)
            if image is None or int(image.post_id) != int(post_id):
                raise NotFound("Image not found")
            self.session.delete(image)
