from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Iterable, Sequence

from flask import Flask, jsonify, request

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BlackoutConflictError,
    DomainError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def ok(payload: dict | None = None, status: int = 200):
    body = {"success": True}
    body.update(payload or {})
    return jsonify(body), status


def fail(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def date_arg(name: str, default: date | None = None) -> date | None:
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def csv_response(app: Flask, *, rows: Iterable[dict], fieldnames: Sequence[str], filename: str):
    """Write rows to a CSV attachment (UTF-8 with BOM so Excel opens it cleanly)."""

    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=list(fieldnames), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)

    csv_bytes = out.getvalue().encode("utf-8-sig")
    return app.response_class(
        csv_bytes,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(InsufficientBalanceError)
    def _insufficient(e: InsufficientBalanceError):
        return fail(str(e), 422, available=e.available, requested=e.requested)

    @app.errorhandler(BlackoutConflictError)
    def _blackout(e: BlackoutConflictError):
        return fail(str(e), 422, blackout_conflicts=e.conflicts)

    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        return fail(str(e), 422)

    @app.errorhandler(AuthenticationError)
    def _authentication(e: AuthenticationError):
        return fail(str(e), 401)

    @app.errorhandler(AuthorizationError)
    def _authorization(e: AuthorizationError):
        return fail(str(e), 403)

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return fail(str(e), 404)

    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        return fail(str(e), 400)

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        # Let Flask render its own HTTP errors (404 routes, 405, 413 ...).
        code = getattr(e, "code", None)
        if isinstance(code, int):
            return fail(getattr(e, "description", str(e)), code)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        if bool(app.config.get("DEBUG", False)):
            return fail(f"Unexpected error: {e}", 500)
        return fail("An unexpected error occurred", 500)
