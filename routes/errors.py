"""API 錯誤處理：將領域例外轉成 JSON 回應。"""

from __future__ import annotations

import json

from flask import Blueprint, jsonify
from pydantic import ValidationError

from storefront.errors import StorefrontError


def register_error_handlers(bp: Blueprint) -> None:
    @bp.errorhandler(StorefrontError)
    def _storefront_error(exc: StorefrontError):
        return jsonify(exc.to_dict()), exc.http_status

    @bp.errorhandler(ValidationError)
    def _validation_error(exc: ValidationError):
        details = json.loads(exc.json(include_url=False))
        return jsonify({"error": "Invalid request", "code": "invalid_request", "details": details}), 400

    @bp.errorhandler(ValueError)
    def _value_error(exc: ValueError):
        return jsonify({"error": str(exc), "code": "invalid_request"}), 400
