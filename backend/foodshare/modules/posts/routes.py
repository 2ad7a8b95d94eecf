from flask import Blueprint, jsonify, request

from ...schemas.base import load_args, load_json
from ...schemas.claim import ClaimSchema, PostClaimSchema
from ...schemas.post import (
    ImageCreateSchema,
    PostCreateSchema,
    PostImageSchema,
    PostQuerySchema,
    PostSchema,
    PostUpdateSchema,
)
from ...security import current_user_id, login_required
from ...services import get_services, policy
from ...services.images import store_post_image

bp = Blueprint("posts", __name__, url_prefix="/posts")

_post_schema = PostSchema()
_claim_schema = ClaimSchema()
_image_schema = PostImageSchema()


@bp.get("")
def list_posts():
    """Browse posts.

    Query: type, userId, status, category (repeatable or comma separated),
    dietary (all listed tags must be present), search, latitude + longitude +
    distance (km), expiryWithin (days), limit, offset.
    """
    args = load_args(PostQuerySchema(), list_fields=("category", "dietary"))
    posts = get_services().posts.list(
        type_=args.get("type"),
        user_id=args.get("user_id"),
        status=args.get("status"),
        categories=args.get("category"),
        dietary=args.get("dietary"),
        search=args.get("search"),
        latitude=args.get("latitude"),
        longitude=args.get("longitude"),
        distance_km=args.get("distance"),
        expiry_within_days=args.get("expiry_within"),
        limit=args["limit"],
        offset=args["offset"],
    )
    return jsonify(_post_schema.dump(posts, many=True))


@bp.post("")
@login_required
def create_post():
    data = load_json(PostCreateSchema())
    post = get_services().posts.create(current_user_id(), data)
    return jsonify(_post_schema.dump(post)), 201


@bp.get("/<int:post_id>")
def get_post(post_id: int):
    return jsonify(_post_schema.dump(get_services().posts.get(post_id)))


@bp.patch("/<int:post_id>")
@login_required
def update_post(post_id: int):
    changes = load_json(PostUpdateSchema(), partial=True)
    post = get_services().posts.update(post_id, current_user_id(), changes)
    return jsonify(_post_schema.dump(post))


@bp.delete("/<int:post_id>")
@login_required
def delete_post(post_id: int):
    get_services().posts.delete(post_id, current_user_id())
    return "", 204


@bp.get("/<int:post_id>/claims")
@login_required
def list_post_claims(post_id: int):
    claims = get_services().claims.list_for_post(post_id, current_user_id())
    return jsonify(_claim_schema.dump(claims, many=True))


@bp.post("/<int:post_id>/claim")
@login_required
def claim_post(post_id: int):
    data = load_json(PostClaimSchema())
    claim = get_services().claims.create(
        post_id,
        current_user_id(),
        message=data.get("message") or data.get("note"),
        contact_preference=data["contact_preference"],
    )
    return jsonify(_claim_schema.dump(claim)), 201


# ----- images ------------------------------------------------------------


@bp.get("/<int:post_id>/images")
def list_images(post_id: int):
    images = get_services().posts.list_images(post_id)
    return jsonify(_image_schema.dump(images, many=True))


@bp.post("/<int:post_id>/images")
@login_required
def add_image(post_id: int):
    """Attach an image: multipart ``image`` file, or JSON ``{"imageUrl": ...}``."""
    services = get_services()
    uid = current_user_id()
    upload = request.files.get("image") or request.files.get("file")
    if upload is not None:
        # Check ownership before anything is written to storage
        policy.require_post_owner(
            services.posts.get(post_id), uid, "You can only add images to your own posts"
        )
        image_url, thumb_url = store_post_image(upload)
    else:
        data = load_json(ImageCreateSchema())
        image_url, thumb_url = data["image_url"], data.get("thumb_url")
    image = services.posts.add_image(post_id, uid, image_url, thumb_url)
    return jsonify(_image_schema.dump(image)), 201


@bp.delete("/<int:post_id>/images/<int:image_id>")
@login_required
def delete_image(post_id: int, image_id: int):
    get_services().posts.delete_image(post_id, image_id, current_user_id())
    return "", 204
