"""HTTP relay between the mobile client and the room-photo analysis model."""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from .config import Settings, load_config
from .errors import HeicConversionFailed, InvalidModelJson, InvalidRequest, MissingApiKey, ModelError
from .image_processing import convert_heic_to_jpeg, is_heic
from .json_recovery import normalize_cards
from .models import MODES, AnalysisRequest, RoomPhoto
from .providers.openrouter_provider import OpenRouterProvider
from .services.analyzer import AnalyzerService
from .utils import log, new_request_id

ANALYSIS_PATH = "/api/analysis/room-photo"
SERVICE_NAME = "cleaning-cards"


def _error(message: str, status: int, **extra: Any):
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status


def _decode_previous_image(value: str) -> bytes:
    # accept a bare base64 string or a data URL
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    return base64.b64decode(value, validate=False)


def create_app(cfg: Optional[Settings] = None, service: Optional[AnalyzerService] = None) -> Flask:
    cfg = cfg or load_config()
    if service is None:
        service = AnalyzerService(OpenRouterProvider(cfg), cfg)

    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_upload_mb * 1024 * 1024
    app.extensions["cleaning_cards.service"] = service
    CORS(app, origins="*", methods=["GET", "POST", "OPTIONS"])

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-Id") or new_request_id()

    @app.after_request
    def echo_request_id(response):
        rid = getattr(g, "request_id", None)
        if rid:
            response.headers["X-Request-Id"] = rid
        return response

    @app.errorhandler(413)
    def too_large(_e):
        return _error("request body too large", 413)

    @app.get("/")
    def health():
        return jsonify({"status": "ok", "service": SERVICE_NAME})

    @app.post(ANALYSIS_PATH)
    def analyze_room_photo():
        rid = g.request_id
        log("=== New request ===", request_id=rid)

        content_type = request.content_type or ""
        if "multipart/form-data" not in content_type:
            log(f"Invalid content-type: {content_type}", request_id=rid)
            return _error("content-type must be multipart/form-data", 415)

        image = request.files.get("image")
        locale = request.form.get("locale") or None
        mode = request.form.get("mode") or "initial"
        previous_image_b64 = request.form.get("previousImage") or None
        previous_cards_json = request.form.get("previousCards") or None

        log(
            f"Mode: {mode}, locale: {locale or 'not specified'}, "
            f"has previousImage: {bool(previous_image_b64)}, has previousCards: {bool(previous_cards_json)}",
            request_id=rid,
        )

        if image is None:
            log("No image file in request", request_id=rid)
            return _error("image file is required", 400)
        image_bytes = image.read()
        if not image_bytes:
            log("Empty image file in request", request_id=rid)
            return _error("image file is required", 400)
        log(f"File: {image.filename}, {image.mimetype}, {len(image_bytes)} bytes", request_id=rid)

        if mode not in MODES:
            return _error("invalid mode", 400)

        previous_image = None
        previous_cards = None
        if mode == "followup":
            if not previous_image_b64 or not previous_cards_json:
                log("Followup requires previousImage and previousCards", request_id=rid)
                return _error("followup mode requires previousImage and previousCards", 400)
            try:
                raw_cards = json.loads(previous_cards_json)
            except json.JSONDecodeError:
                log("Failed to parse previousCards", request_id=rid)
                return _error("invalid previousCards JSON", 400)
            if not isinstance(raw_cards, list):
                return _error("invalid previousCards JSON", 400)
            previous_cards = normalize_cards(raw_cards)
            try:
                previous_image = RoomPhoto(jpeg=_decode_previous_image(previous_image_b64))
            except (binascii.Error, ValueError):
                return _error("invalid previousImage", 400)

        if is_heic(image.mimetype, image.filename):
            try:
                image_bytes = convert_heic_to_jpeg(image_bytes, cfg.heic_quality)
            except HeicConversionFailed as e:
                log(f"HEIC conversion failed: {e}", request_id=rid)
                return _error("heic_convert_failed", 415)

        analysis_request = AnalysisRequest(
            image=RoomPhoto(jpeg=image_bytes, locale=locale),
            locale=locale,
            mode=mode,
            previous_image=previous_image,
            previous_cards=previous_cards,
        )

        try:
            result = service.analyze(analysis_request, request_id=rid)
        except InvalidRequest as e:
            return _error(str(e), 400)
        except InvalidModelJson as e:
            log("Failed to parse JSON from model", request_id=rid)
            return _error("invalid_json_from_model", 502, raw=e.raw)
        except MissingApiKey as e:
            return _error(str(e), 500)
        except ModelError as e:
            log(f"Model call failed: {e}", request_id=rid)
            return _error(str(e), 502)
        except Exception as e:
            log(f"Error: {e!r}", request_id=rid)
            return _error(str(e) or "Unknown error", 500)

        return jsonify(result.to_dict())

    return app
