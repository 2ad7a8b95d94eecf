from __future__ import annotations

import logging
import os
import secrets
from io import BytesIO
from typing import Optional, Tuple

import boto3
from botocore.client import Config as BotoConfig
from flask import current_app, url_for
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage

from ..errors import InvalidInput

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")
THUMB_SIZE = (480, 480)


def _make_thumbnail(file_bytes: bytes, ext: str) -> bytes:
    try:
        img = Image.open(BytesIO(file_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidInput("Uploaded file is not a valid image") from e
    img.thumbnail(THUMB_SIZE)
    thumb_io = BytesIO()
    thumb_format = "PNG" if ext in (".png", ".webp", ".gif") else "JPEG"
    if thumb_format == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    img.save(thumb_io, format=thumb_format, optimize=True)
    return thumb_io.getvalue()


def store_post_image(upload: FileStorage) -> Tuple[str, Optional[str]]:
    """Persist an uploaded post image and its thumbnail; return (url, thumb_url).

    Goes to S3 when S3_BUCKET_NAME is configured, otherwise to UPLOAD_FOLDER
    (served by the app's /uploads route).
    """
    if not upload or not upload.filename:
        raise InvalidInput("An image file is required")
    ext = os.path.splitext(upload.filename)[1].lower()[:10]
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidInput(f"Unsupported image type '{ext or 'unknown'}'")
    fname = secrets.token_hex(16) + ext

    # Read bytes once
    file_bytes = upload.read()
    thumb_bytes = _make_thumbnail(file_bytes, ext)

    s3_bucket = current_app.config.get("S3_BUCKET_NAME")
    if s3_bucket:
        s3 = boto3.client(
            "s3",
            region_name=current_app.config.get("S3_REGION") or None,
            aws_access_key_id=current_app.config.get("S3_ACCESS_KEY_ID") or None,
            aws_secret_access_key=current_app.config.get("S3_SECRET_ACCESS_KEY") or None,
            endpoint_url=current_app.config.get("S3_ENDPOINT_URL") or None,
            config=BotoConfig(s3={"addressing_style": "virtual"}),
        )
        key = f"uploads/{fname}"
        tkey = f"uploads/thumbs/{fname}"
        s3.put_object(Bucket=s3_bucket, Key=key, Body=file_bytes, ContentType=upload.mimetype or "application/octet-stream", ACL="public-read")
        s3.put_object(Bucket=s3_bucket, Key=tkey, Body=thumb_bytes, ContentType=upload.mimetype or "image/jpeg", ACL="public-read")
        base = current_app.config.get("S3_PUBLIC_URL_BASE")
        if not base:
            region = current_app.config.get("S3_REGION") or "us-east-1"
            base = f"https://{s3_bucket}.s3.{region}.amazonaws.com"
        logger.info("Stored post image %s in bucket %s", key, s3_bucket)
        return f"{base}/{key}", f"{base}/{tkey}"

    # Local storage
    upload_folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(os.path.join(upload_folder, "thumbs"), exist_ok=True)
    with open(os.path.join(upload_folder, fname), "wb") as f:
        f.write(file_bytes)
    with open(os.path.join(upload_folder, "thumbs", fname), "wb") as f:
        f.write(thumb_bytes)
    # Relative URLs avoid host coupling; a reverse proxy may serve /uploads directly
    return (
        url_for("uploads", filename=fname, _external=False),
        url_for("uploads", filename=f"thumbs/{fname}", _external=False),
    )
