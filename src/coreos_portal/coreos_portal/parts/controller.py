from __future__ import annotations

from flask import Flask, request

from ..common.guards import admin_required, current_user_id, login_required
from ..common.http import json_body, ok
from ..core.constants import PARTS_PER_PAGE
from ..core.exceptions import ValidationError
from ..container import Container
from .model import PartFilters


def _list_arg(name: str) -> tuple[str, ...]:
    raw = request.args.get(name) or ""
    return tuple(v.strip() for v in raw.split(",") if v.strip())


def _filters_from_args() -> PartFilters:
    upload_id = request.args.get("upload_id")
    try:
        upload_id = int(upload_id) if upload_id else None
    except ValueError:
        raise ValidationError("upload_id must be an integer")

    return PartFilters(
        search=request.args.get("search"),
        manufacturers=_list_arg("manufacturer"),
        categories=_list_arg("category"),
        models=_list_arg("model"),
        part_types=_list_arg("part_type"),
        serials=_list_arg("serial_number"),
        upload_id=upload_id,
    )


def register(app: Flask, container: Container) -> None:
    catalog = container.parts_catalog_service

    @app.route("/parts", methods=["GET"], endpoint="parts_index")
    @login_required
    def parts_index():
        page = catalog.search(
            _filters_from_args(),
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page", PARTS_PER_PAGE),
        )
        return ok(page.to_dict())

    @app.route("/parts/filter-options", methods=["GET"], endpoint="parts_filter_options")
    @login_required
    def parts_filter_options():
        return ok({"filterOptions": catalog.filter_options()})

    @app.route("/parts/count", methods=["GET"], endpoint="parts_count")
    @login_required
    def parts_count():
        return ok({"count": catalog.active_count()})

    @app.route("/parts/<int:part_id>", methods=["GET"], endpoint="parts_show")
    @login_required
    def parts_show(part_id: int):
        return ok({"part": catalog.get_part(part_id).to_dict()})

    @app.route("/parts/<int:part_id>", methods=["PUT"], endpoint="parts_update")
    @admin_required
    def parts_update(part_id: int):
        part = catalog.update_part(part_id, json_body())
        return ok({"part": part.to_dict()})

    @app.route("/parts/uploads", methods=["POST"], endpoint="parts_upload")
    @admin_required
    def parts_upload():
        file = request.files.get("file")
        if not file or not file.filename:
            raise ValidationError("Please choose a parts file to upload")
        upload = catalog.import_catalog(filename=file.filename, data=file.read(), uploaded_by=current_user_id())
        return ok({"upload": upload.to_dict()}, 201)

    @app.route("/parts/uploads", methods=["GET"], endpoint="parts_uploads")
    @admin_required
    def parts_uploads():
        uploads, total = catalog.list_uploads(
            search=request.args.get("search"),
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page", 20),
        )
        return ok({"uploads": [u.to_dict() for u in uploads], "total": total})

    @app.route("/parts/uploads/<int:upload_id>", methods=["GET"], endpoint="parts_upload_show")
    @admin_required
    def parts_upload_show(upload_id: int):
        upload, stats = catalog.upload_details(upload_id)
        return ok({"upload": upload.to_dict(), "statistics": stats})
