"""
Vision service route handlers.

Provides routes for:
- Image analysis through the Responses API (/analyze)
- Image analysis through Chat Completions (/chat, legacy)
- Serving temporary uploads so OpenAI can fetch them (/temp_uploads/<file>)

Every analysis request runs the same pipeline:
validate -> store temp file -> call OpenAI -> delete temp file -> respond.
The temp file is deleted only when OpenAI answered successfully; on failure
it is left on disk and its path is logged.
"""

import json
import logging
import os
from typing import Tuple, Dict, Any, Callable, Union

from flask import Blueprint, request, jsonify, Response, current_app, send_from_directory
from werkzeug.exceptions import HTTPException, MethodNotAllowed, RequestEntityTooLarge

from backend.vision_service.clients import build_client, VisionClient
from backend.vision_service.errors import VisionServiceError
from backend.vision_service.formatter import success_envelope, legacy_envelope, error_envelope
from backend.vision_service.storage import TempImageStore
from backend.vision_service.validation import validate_upload

TEMP_UPLOADS_PATH = "temp_uploads"

vision_bp = Blueprint("vision", __name__)
uploads_bp = Blueprint("uploads", __name__)


# --- REQUEST LOGGING ---
@vision_bp.before_request
def before_request() -> None:
    """
    Log every incoming request to the vision service.
    """
    logging.info(
        f"[Vision] Incoming {request.method} {request.path} "
        f"Content-Length={request.content_length}"
    )


@vision_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Vision] Response {response.status}")
    return response


# --- ERROR HANDLERS ---
@vision_bp.app_errorhandler(MethodNotAllowed)
def method_not_allowed(e: MethodNotAllowed) -> Tuple[Response, int]:
    """
    JSON body for 405s, listing the methods the route does accept.
    """
    allowed = [m for m in (e.valid_methods or []) if m not in ("OPTIONS", "HEAD")]
    return jsonify({
        "success": False,
        "error": f"Method not allowed. Only {', '.join(allowed)} requests are accepted.",
        "allowed_methods": allowed,
    }), 405


@vision_bp.app_errorhandler(RequestEntityTooLarge)
def request_too_large(e: RequestEntityTooLarge) -> Tuple[Response, int]:
    max_mb = current_app.config["MAX_IMAGE_BYTES"] // (1024 * 1024)
    return jsonify(error_envelope(f"File too large. Maximum size is {max_mb}MB.")), 413


# --- HELPERS ---
def get_store() -> TempImageStore:
    """
    Temp store for the current request.

    The public URL comes from PUBLIC_BASE_URL when configured, otherwise from
    the host the request arrived on.
    """
    base_url = current_app.config.get("PUBLIC_BASE_URL")
    if not base_url:
        base_url = request.url_root.rstrip("/") + "/" + TEMP_UPLOADS_PATH
    return TempImageStore(current_app.config["UPLOAD_DIR"], base_url)


def get_client(version: str) -> VisionClient:
    """
    Adapter for the given version, built once per app and cached.
    """
    clients = current_app.extensions.setdefault("vision_clients", {})
    if version not in clients:
        clients[version] = build_client(current_app.config, version)
    return clients[version]


def run_pipeline(version: str,
                 envelope: Callable[[Dict[str, Any], str], Dict[str, Any]]
                 ) -> Union[Tuple[Response, int], Tuple[str, int]]:
    """
    Validate, store, analyze and respond.

    Args:
        version (str): Adapter version passed to build_client.
        envelope (callable): Builds the success body from (provider reply, model).

    Returns:
        200: Success envelope.
        400: Failure envelope (validation, storage, or OpenAI error).
        500: Failure envelope for unexpected errors.
    """
    # CORS preflight
    if request.method == "OPTIONS":
        return "", 200

    try:
        client = get_client(version)
        upload, prompt = validate_upload(
            request.files, request.form, current_app.config["MAX_IMAGE_BYTES"]
        )
        store = get_store()
        image_url = store.store(upload)
    except VisionServiceError as e:
        logging.warning(f"[Vision] Rejected request: {e.message}")
        return jsonify(error_envelope(e.message)), e.status_code
    except HTTPException:
        # e.g. 413 from an oversized body, rendered by its own handler
        raise
    except Exception as e:
        logging.exception(f"[Vision] Unexpected error before dispatch: {e}")
        return jsonify(error_envelope(str(e))), 500

    try:
        response = client.analyze(image_url, prompt)
    except VisionServiceError as e:
        # Temp file is kept on purpose
        logging.error(
            f"[Vision] OpenAI call failed, keeping {store.path_for(image_url)} "
            f"for inspection: {e.message}"
        )
        return jsonify(error_envelope(e.message)), e.status_code
    except Exception as e:
        logging.exception(
            f"[Vision] Unexpected error during OpenAI call, keeping "
            f"{store.path_for(image_url)}: {e}"
        )
        return jsonify(error_envelope(str(e))), 500

    logging.info(f"OpenAI Response: {json.dumps(response)}")

    try:
        body = envelope(response, client.model)
    except Exception as e:
        logging.exception(
            f"[Vision] Could not format OpenAI reply, keeping "
            f"{store.path_for(image_url)}: {e}"
        )
        return jsonify(error_envelope(str(e))), 500

    store.delete(image_url)
    return jsonify(body), 200


# --- ROUTES ---
@vision_bp.route("/analyze", methods=["POST", "OPTIONS"])
def analyze_image() -> Union[Tuple[Response, int], Tuple[str, int]]:
    """
    Analyze an uploaded image with the Responses API.

    Expects multipart/form-data with:
    - image (file): JPEG, PNG, GIF or WebP, up to 10MB.
    - prompt (str, optional): Question about the image.

    Returns:
        200: {success, message, ai_response, usage, model, timestamp}
        400: {success: false, error, timestamp}
    """
    return run_pipeline("responses", success_envelope)


@vision_bp.route("/chat", methods=["POST", "OPTIONS"])
def chat_image() -> Union[Tuple[Response, int], Tuple[str, int]]:
    """
    Legacy handler: analyze an uploaded image with Chat Completions.

    Same request contract as /analyze. The provider reply is returned
    untouched under `response`.
    """
    return run_pipeline("chat", legacy_envelope)


@uploads_bp.route(f"/{TEMP_UPLOADS_PATH}/<path:filename>", methods=["GET"])
def serve_upload(filename: str) -> Response:
    """
    Serve a stored temp image. 404 when it does not exist (or was cleaned up).
    """
    return send_from_directory(os.path.abspath(current_app.config["UPLOAD_DIR"]), filename)
