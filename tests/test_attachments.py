"""Attachment storage and the record sheets that own the files."""

import asyncio
import io
import re
import threading

import pytest
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers, UploadFile

from ledger_core.app.services import (
    AttachmentStore, NotFound, ValidationFailed, VendorRecordService,
)


def make_upload(filename, content_type, payload=b"%PDF-1.4 test"):
    return UploadFile(
        file=io.BytesIO(payload),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def attachments(tmp_path):
    return AttachmentStore(tmp_path / "uploads", max_bytes=1024)


@pytest.fixture
def sheet(db):
    record = VendorRecordService.upsert(db, vendor="Anuj Kumar", wire="22mm", qty_out=10)
    db.commit()
    return record


def stored_files(store):
    if not store.root.exists():
        return []
    return sorted(p.name for p in store.root.iterdir())


class TestAttachmentStore:

    def test_save_pdf(self, attachments):
        stored = asyncio.run(attachments.save(make_upload("bill.pdf", "application/pdf"), "pdf"))

        assert re.fullmatch(r"pdf-\d+-\d+\.pdf", stored.filename)
        assert stored_files(attachments) == [stored.filename]
        assert attachments.exists(stored.path)

    def test_wrong_type_writes_nothing(self, attachments):
        with pytest.raises(ValidationFailed):
            asyncio.run(attachments.save(make_upload("notes.txt", "text/plain"), "pdf"))

        assert stored_files(attachments) == []

    def test_extension_and_content_type_must_both_match(self, attachments):
        with pytest.raises(ValidationFailed):
            asyncio.run(attachments.save(make_upload("photo.png", "text/html"), "image"))

    def test_too_large_leaves_no_partial_file(self, attachments):
        upload = make_upload("photo.png", "image/png", payload=b"x" * 5000)

        with pytest.raises(ValidationFailed) as exc_info:
            asyncio.run(attachments.save(upload, "image"))

        assert "File too large" in exc_info.value.message
        assert stored_files(attachments) == []

    def test_remove(self, attachments):
        stored = asyncio.run(attachments.save(make_upload("photo.jpg", "image/jpeg"), "image"))

        attachments.remove(stored.path)
        attachments.remove(stored.path)

        assert stored_files(attachments) == []


class TestRecordAttachments:

    def test_attach_replaces_previous_file(self, db, attachments, sheet):
        first = asyncio.run(VendorRecordService.attach(
            db, attachments, sheet.id, make_upload("a.pdf", "application/pdf"), kind="pdf"
        ))
        first_path = first.pdf_path

        second = asyncio.run(VendorRecordService.attach(
            db, attachments, sheet.id, make_upload("b.pdf", "application/pdf"), kind="pdf"
        ))

        assert second.pdf_path != first_path
        assert stored_files(attachments) == [second.pdf_file]

    def test_missing_record_writes_nothing(self, db, attachments):
        with pytest.raises(NotFound):
            asyncio.run(VendorRecordService.attach(
                db, attachments, 99, make_upload("a.pdf", "application/pdf"), kind="pdf"
            ))

        assert stored_files(attachments) == []

    def test_failed_commit_removes_new_file(self, db, attachments, sheet, monkeypatch):
        def broken_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", broken_commit)

        with pytest.raises(OperationalError):
            asyncio.run(VendorRecordService.attach(
                db, attachments, sheet.id, make_upload("a.png", "image/png"), kind="image"
            ))

        assert stored_files(attachments) == []

    def test_commit_runs_off_the_event_loop(self, db, attachments, sheet, monkeypatch):
        real_commit = db.commit
        commit_threads = []

        def recording_commit():
            commit_threads.append(threading.get_ident())
            real_commit()

        monkeypatch.setattr(db, "commit", recording_commit)

        async def upload():
            loop_thread = threading.get_ident()
            await VendorRecordService.attach(
                db, attachments, sheet.id, make_upload("a.pdf", "application/pdf"), kind="pdf"
            )
            return loop_thread

        loop_thread = asyncio.run(upload())

        assert len(commit_threads) == 1
        assert commit_threads[0] != loop_thread

    def test_delete_record_removes_files(self, db, attachments, sheet):
        sheet_id = sheet.id
        asyncio.run(VendorRecordService.attach(
            db, attachments, sheet.id, make_upload("a.pdf", "application/pdf"), kind="pdf"
        ))
        asyncio.run(VendorRecordService.attach(
            db, attachments, sheet.id, make_upload("a.gif", "image/gif"), kind="image"
        ))
        assert len(stored_files(attachments)) == 2

        VendorRecordService.delete_record(db, attachments, sheet_id)

        assert stored_files(attachments) == []
        with pytest.raises(NotFound):
            VendorRecordService.get_record(db, sheet_id)

    def test_upsert_keeps_one_sheet_per_vendor_wire(self, db, sheet):
        VendorRecordService.upsert(db, vendor="Anuj Kumar", wire="22mm", qty_in=4)
        db.commit()

        records = VendorRecordService.list_records(db)
        assert len(records) == 1
        assert (records[0].qty_out, records[0].qty_in, records[0].design) == (0, 4, "N/A")
