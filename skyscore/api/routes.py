"""Flask blueprint exposing the resolution pipeline."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from skyscore.errors import json_error
from skyscore.pipeline import AggregationPipeline

LOGGER = logging.getLogger("skyscore.api")


def create_blueprint(pipeline: AggregationPipeline) -> Blueprint:
    bp = Blueprint("skyscore_api", __name__)

    @bp.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "windows": list(pipeline.config.windows)})

    @bp.route("/score", methods=["GET"])
    def score():
        handle = (request.args.get("handle") or "").strip()
        if not handle:
            return json_error("handle is required", 400)
        result = pipeline.run(handle)
        if not result.ok:
            LOGGER.info("score %s -> %s: %s", handle, result.status, result.error)
            return json_error(result.error or "error", result.status)
        return jsonify(result.payload)

    return bp
