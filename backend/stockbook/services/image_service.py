# Overview: Local-disk stand-in for the image storage collaborator.

"""
Inventory images are stored as opaque references. This module only saves
an uploaded file and releases a reference again; it never inspects the
image bytes.

References are paths relative to UPLOAD_FOLDER, e.g.
"inventory-images/1718000000000-widget.png". Remote URLs (http/https) are
accepted as references but never touched on release.
"""

from __future__ import annotations

import os
import time

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import StorageError, ValidationError


def _upload_root() -> str:
    return os.path.abspath(current_app.config["UPLOAD_FOLDER"])


def _resolve(ref: str) -> str | None:
    """Absolute path for a local reference, or None if it escapes the upload root."""
    root = _upload_root()
    path = os.path.abspath(os.path.join(root, ref))
    if os.path.commonpath([root, path]) != root:
        return None
    return path


def save_inventory_image(file: FileStorage) -> str:
    """Persist an uploaded image and return its reference."""
    original = file.filename or ""
    ext = os.path.splitext(original)[1].lower()
    allowed = current_app.config["ALLOWED_IMAGE_EXTENSIONS"]
    if ext not in allowed:
        raise ValidationError("Only image files are allowed", details={"allowed": sorted(allowed)})

    filename = secure_filename(original) or f"image{ext}"
    subdir = current_app.config["INVENTORY_IMAGE_SUBDIR"]
    ref = f"{subdir}/{int(time.time() * 1000)}-{filename}"

    path = _resolve(ref)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        file.save(path)
    except OSError as exc:
        current_app.logger.exception("Failed to store inventory image")
        raise StorageError("Failed to store image") from exc

    return ref


def release_image(ref: str | None) -> bool:
    """
    Release a stored image reference.

    Returns True if a file was removed. Missing files are not an error.
    """
    if not ref or ref.startswith(("http://", "https://")):
        return False

    path = _resolve(ref)
    if path is None:
        current_app.logger.warning("Refusing to release image outside upload folder: %s", ref)
        return False

    if not os.path.exists(path):
        return False

    try:
        os.remove(path)
    except OSError as exc:
        current_app.logger.exception("Failed to release inventory image")
        raise StorageError("Failed to release image") from exc
    return True
