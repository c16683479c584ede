from __future__ import annotations

import io

from flask import Flask, request, send_file, session

from ..common.guards import login_required
from ..common.http import json_body, ok
from ..core.exceptions import ValidationError
from ..container import Container
from .model import ColumnMapping

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _columns_json(columns) -> list[dict]:
    return [{"index": c.index, "name": c.name} for c in columns]


def _mapping_from(data: dict) -> ColumnMapping:
    mapped = data.get("mappedColumns") or {}
    try:
        return ColumnMapping(
            container=int(mapped["container"]),
            part=int(mapped["part"]),
            quantity=int(mapped["quantity"]),
        )
    except (KeyError, TypeError, ValueError):
        raise ValidationError("mappedColumns.container, mappedColumns.part and mappedColumns.quantity are required")


def register(app: Flask, container: Container) -> None:
    expander = container.container_expander_service

    @app.route("/warehouse/container-expander/upload", methods=["POST"], endpoint="container_expander_upload")
    @login_required
    def container_expander_upload():
        file = request.files.get("spreadsheet")
        if not file or not file.filename:
            raise ValidationError("Please choose a spreadsheet to upload")

        result = expander.upload(
            filename=file.filename,
            data=file.read(),
            start_row=request.form.get("startRow", 1),
        )
        session["expander_token"] = result.token
        return ok(
            {
                "token": result.token,
                "columns": _columns_json(result.columns),
                "sheetPreview": [{"row": p.row, "data": p.data} for p in result.preview],
            }
        )

    @app.route("/warehouse/container-expander/columns", methods=["POST"], endpoint="container_expander_columns")
    @login_required
    def container_expander_columns():
        data = json_body()
        columns = expander.update_columns(token=data.get("token", ""), start_row=data.get("startRow"))
        return ok({"columns": _columns_json(columns)})

    @app.route("/warehouse/container-expander/expand", methods=["POST"], endpoint="container_expander_expand")
    @login_required
    def container_expander_expand():
        data = json_body()
        token = data.get("token", "")
        rows = expander.expand(token=token, start_row=data.get("startRow"), mapping=_mapping_from(data))
        session["expander_token"] = token
        return ok({"expandedData": [r.to_dict() for r in rows]})

    @app.route("/warehouse/container-expander/download", methods=["GET"], endpoint="container_expander_download")
    @login_required
    def container_expander_download():
        token = request.args.get("token") or session.get("expander_token")
        content, filename = expander.download(token=token)
        return send_file(
            io.BytesIO(content),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=filename,
        )
