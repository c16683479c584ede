from __future__ import annotations

import io
import os
import zipfile
from datetime import datetime, timedelta

import pytest
from openpyxl import Workbook, load_workbook

from src.coreos_portal.coreos_portal.core.exceptions import NotFoundError, ValidationError
from src.coreos_portal.coreos_portal.warehouse import service as service_module
from src.coreos_portal.coreos_portal.warehouse.model import ColumnMapping
from src.coreos_portal.coreos_portal.warehouse.service import ContainerExpanderService
from src.coreos_portal.coreos_portal.warehouse.storage import UploadStore


def packing_list_bytes() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(["ACME Packing List"])
    ws.append([])
    ws.append(["Carton", "Part #", "Qty"])
    ws.append(["1-2", "00123", 10])
    ws.append([3, "00456", 5])
    ws.append(["STOP", "-", "-"])
    ws.append(["4", "00789", 1])
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def broken_sheet_bytes() -> bytes:
    """A valid workbook whose first sheet XML is cut off mid-element."""

    src = zipfile.ZipFile(io.BytesIO(packing_list_bytes()))
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w") as dst:
        for item in src.infolist():
            data = src.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = data[: len(data) // 2]
            dst.writestr(item, data)
    return out.getvalue()


@pytest.fixture
def service(tmp_path, fixed_now):
    store = UploadStore(tmp_path / "uploads", ttl_hours=24, clock=lambda: fixed_now)
    return ContainerExpanderService(store, max_upload_mb=1, clock=lambda: fixed_now)


def test_upload_returns_columns_and_preview(service):
    result = service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=3)

    assert len(result.token) == 32
    assert [(c.index, c.name) for c in result.columns] == [(0, "Carton"), (1, "Part #"), (2, "Qty")]
    assert result.preview[0].row == 1
    assert result.preview[0].data["A"] == "ACME Packing List"
    assert result.preview[1].data["A"] is None
    assert result.preview[3].data == {"A": "1-2", "B": "00123", "C": 10}


def test_update_columns_follows_start_row(service):
    token = service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=1).token

    assert [c.name for c in service.update_columns(token=token, start_row=1)] == ["ACME Packing List"]
    assert [c.index for c in service.update_columns(token=token, start_row=3)] == [0, 1, 2]


@pytest.mark.parametrize(
    "filename,data,start_row",
    [
        ("list.csv", b"a,b", 1),
        ("list.xlsx", b"", 1),
        ("list.xlsx", b"x" * (1024 * 1024 + 1), 1),
        ("list.xlsx", b"not a workbook", 1),
        ("list.xlsx", b"whatever", 0),
    ],
)
def test_upload_rejects_bad_input(service, filename, data, start_row):
    with pytest.raises(ValidationError):
        service.upload(filename=filename, data=data, start_row=start_row)


def test_broken_upload_is_not_kept(service, tmp_path):
    with pytest.raises(ValidationError):
        service.upload(filename="list.xlsx", data=b"not a workbook", start_row=1)

    assert list((tmp_path / "uploads").iterdir()) == []


def test_malformed_sheet_xml_is_rejected_and_not_kept(service, tmp_path):
    with pytest.raises(ValidationError):
        service.upload(filename="list.xlsx", data=broken_sheet_bytes(), start_row=1)

    assert list((tmp_path / "uploads").iterdir()) == []


def test_upload_is_discarded_on_unexpected_errors(service, tmp_path, monkeypatch):
    def explode(path):
        raise RuntimeError("disk went away")

    monkeypatch.setattr(service_module, "read_grid", explode)

    with pytest.raises(RuntimeError):
        service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=1)
    assert list((tmp_path / "uploads").iterdir()) == []


def test_expand_and_download_as_text(service):
    token = service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=3).token

    rows = service.expand(token=token, start_row=3, mapping=ColumnMapping(container=0, part=1, quantity=2))

    assert [(r.container, r.part, r.quantity) for r in rows] == [(1, "00123", 10), (2, "00123", 10), (3, "00456", 5)]

    content, filename = service.download(token=token)
    assert filename == "expanded_containers_2026-03-02_09-00.xlsx"

    ws = load_workbook(io.BytesIO(content)).active
    assert [c.value for c in ws[1]] == ["Carton #", "Part #", "PCS Per Carton"]
    assert [c.value for c in ws[2]] == ["1", "00123", "10"]
    assert ws["B4"].value == "00456"
    assert ws["B4"].number_format == "@"
    assert ws.max_row == 4


def test_unknown_or_malformed_token(service):
    with pytest.raises(NotFoundError):
        service.update_columns(token="../../etc/passwd", start_row=1)
    with pytest.raises(NotFoundError):
        service.update_columns(token="0" * 32, start_row=1)


def test_download_before_expand(service):
    token = service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=3).token

    with pytest.raises(NotFoundError):
        service.download(token=token)
    with pytest.raises(NotFoundError):
        service.download(token=None)


def test_negative_mapping_is_rejected(service):
    token = service.upload(filename="list.xlsx", data=packing_list_bytes(), start_row=3).token

    with pytest.raises(ValidationError):
        service.expand(token=token, start_row=3, mapping=ColumnMapping(container=-1, part=1, quantity=2))


def test_purge_stale_removes_old_files(tmp_path, fixed_now):
    store = UploadStore(tmp_path, ttl_hours=1, clock=lambda: fixed_now)
    old = store.save_upload(b"old")
    fresh = store.save_upload(b"fresh")
    (tmp_path / "notes.txt").write_text("keep")

    stamp = (fixed_now - timedelta(hours=2)).timestamp()
    os.utime(tmp_path / f"{old}.xlsx", (stamp, stamp))
    now_stamp = fixed_now.timestamp()
    os.utime(tmp_path / f"{fresh}.xlsx", (now_stamp, now_stamp))

    assert store.purge_stale() == 1
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted([f"{fresh}.xlsx", "notes.txt"])
