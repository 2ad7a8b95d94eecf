from flask import Blueprint, jsonify

from ...schemas.base import load_args, load_json
from ...schemas.claim import ClaimCreateSchema, ClaimQuerySchema, ClaimSchema, ClaimUpdateSchema, HandoverVerifySchema
from ...schemas.message import MessageCreateSchema, MessageSchema
from ...schemas.rating import RatingCreateSchema, RatingSchema
from ...errors import Forbidden, InvalidInput
from ...security import current_user_id, login_required
from ...services import get_services
from ...timeutil import as_utc

bp = Blueprint("claims", __name__, url_prefix="/claims")

_claim_schema = ClaimSchema()
_rating_schema = RatingSchema()
_message_schema = MessageSchema()


@bp.get("")
@login_required
def list_claims():
    """Claims the caller made (role=claimer), received (role=owner), or both."""
    args = load_args(ClaimQuerySchema())
    claims = get_services().claims.list_for_user(
        current_user_id(),
        post_id=args.get("post_id"),
        status=args.get("status"),
        role=args.get("role"),
        limit=args["limit"],
        offset=args["offset"],
    )
    return jsonify(_claim_schema.dump(claims, many=True))


@bp.post("")
@login_required
def create_claim():
    data = load_json(ClaimCreateSchema())
    claim = get_services().claims.create(
        data["post_id"],
        current_user_id(),
        message=data.get("message"),
        contact_preference=data["contact_preference"],
    )
    return jsonify(_claim_schema.dump(claim)), 201


@bp.get("/<int:claim_id>")
@login_required
def get_claim(claim_id: int):
    claim = get_services().claims.get_for_party(claim_id, current_user_id())
    return jsonify(_claim_schema.dump(claim))


@bp.patch("/<int:claim_id>")
@login_required
def update_claim(claim_id: int):
    data = load_json(ClaimUpdateSchema())
    claim = get_services().claims.transition(claim_id, current_user_id(), data["status"])
    return jsonify(_claim_schema.dump(claim))


@bp.delete("/<int:claim_id>")
@login_required
def delete_claim(claim_id: int):
    get_services().claims.delete(claim_id, current_user_id())
    return "", 204


# ----- handover ------------------------------------------------------------


@bp.post("/<int:claim_id>/handover-code")
@login_required
def generate_handover_code(claim_id: int):
    """Owner-only. The plaintext code is returned here and nowhere else."""
    code, expires_at = get_services().handover.generate(claim_id, current_user_id())
    return jsonify({"code": code, "expiresAt": as_utc(expires_at).isoformat()})


@bp.post("/<int:claim_id>/verify-handover")
@login_required
def verify_handover(claim_id: int):
    data = load_json(HandoverVerifySchema())
    claim = get_services().handover.verify(claim_id, current_user_id(), data["code"])
    return jsonify(_claim_schema.dump(claim))


# ----- ratings -------------------------------------------------------------


@bp.post("/<int:claim_id>/rate")
@login_required
def rate(claim_id: int):
    data = load_json(RatingCreateSchema())
    uid = current_user_id()
    if data.get("claim_id") is not None and int(data["claim_id"]) != claim_id:
        raise InvalidInput("claimId does not match the claim in the URL")
    if data.get("from_user_id") is not None and int(data["from_user_id"]) != uid:
        raise Forbidden("You can only submit ratings as yourself")
    rating, created = get_services().ratings.submit(
        claim_id,
        uid,
        data.get("to_user_id"),
        data["rating"],
        comment=data.get("comment"),
        categories=data.get("categories"),
    )
    return jsonify(_rating_schema.dump(rating)), 201 if created else 200


@bp.get("/<int:claim_id>/ratings")
@login_required
def list_ratings(claim_id: int):
    ratings = get_services().ratings.list_for_claim(claim_id, current_user_id())
    return jsonify(_rating_schema.dump(ratings, many=True))


# ----- messages ------------------------------------------------------------


@bp.get("/<int:claim_id>/messages")
@login_required
def list_messages(claim_id: int):
    messages = get_services().messages.list_for_claim(claim_id, current_user_id())
    return jsonify(_message_schema.dump(messages, many=True))


@bp.post("/<int:claim_id>/messages")
@login_required
def send_message(claim_id: int):
    data = load_json(MessageCreateSchema())
    msg = get_services().messages.send(claim_id, current_user_id(), data["content"])
    return jsonify(_message_schema.dump(msg)), 201
