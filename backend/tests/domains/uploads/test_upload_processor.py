"""Tests for the upload processing pipeline and worker pool."""
import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from pilllog.domains.medications.models import Medication
from pilllog.domains.uploads.models import ImageUpload, ProcessingStatus
from pilllog.domains.uploads.processor import (
    UploadJob,
    UploadProcessor,
    UploadQueueFullError,
    UploadWorkerPool,
)
from pilllog.domains.uploads.schemas import ImageUploadCreate
from pilllog.domains.uploads.service import UploadsService
from pilllog.domains.uploads.vision_client import RecognitionError, VisionClient

LABELED_TEXT = "약품명: 아스피린\n용법용량: 1일 2회\n병원명: 서울병원\n투여일수: 7일"


@pytest.fixture
def vision_client():
    return MagicMock(spec=VisionClient)


@pytest.fixture
def processor(session_factory, vision_client):
    return UploadProcessor(session_factory=session_factory, vision_client=vision_client)


@pytest.fixture
def upload_id(session_factory, demo_user_id):
    with session_factory() as db:
        upload = UploadsService(db).create_upload(
            ImageUploadCreate(
                user_id=demo_user_id,
                file_name="rx.jpg",
                original_url="upload_1_rx.jpg",
            )
        )
        return upload.id


def load_upload(session_factory, upload_id) -> ImageUpload:
    with session_factory() as db:
        return db.query(ImageUpload).filter(ImageUpload.id == upload_id).one()


def count_medications(session_factory) -> int:
    with session_factory() as db:
        return db.query(Medication).count()


class TestUploadProcessor:
    """Tests for UploadProcessor."""

    def test_new_upload_starts_processing(self, session_factory, upload_id):
        """Test that accepted uploads skip the pending state."""
        assert load_upload(session_factory, upload_id).processing_status == "processing"

    def test_successful_ocr_creates_linked_medication(
        self, processor, vision_client, session_factory, upload_id, demo_user_id
    ):
        """Test the full pipeline from OCR text to a linked medication."""
        vision_client.recognize.return_value = LABELED_TEXT

        processor.process(UploadJob(upload_id=upload_id, user_id=demo_user_id, image_bytes=b"img"))

        upload = load_upload(session_factory, upload_id)
        assert upload.processing_status == ProcessingStatus.COMPLETED.value
        assert upload.extracted_text == LABELED_TEXT
        assert upload.medication_id is not None

        with session_factory() as db:
            medication = db.query(Medication).filter(Medication.id == upload.medication_id).one()
        assert medication.user_id == demo_user_id
        assert medication.name == "아스피린"
        assert medication.dosage == "1일 2회"
        assert medication.hospital_name == "서울병원"
        assert medication.duration == "7"
        assert medication.is_active is True
        assert medication.end_date - medication.start_date == timedelta(days=7)
        vision_client.recognize.assert_called_once_with(b"img")

    def test_huge_duration_still_links_medication(
        self, processor, vision_client, session_factory, upload_id, demo_user_id
    ):
        """Test that a day count past the calendar range completes without an end date."""
        vision_client.recognize.return_value = "약품명: 아스피린\n투여일수: 99999999일"

        processor.process(UploadJob(upload_id=upload_id, user_id=demo_user_id, image_bytes=b"img"))

        upload = load_upload(session_factory, upload_id)
        assert upload.processing_status == ProcessingStatus.COMPLETED.value
        assert upload.medication_id is not None
        with session_factory() as db:
            medication = db.query(Medication).filter(Medication.id == upload.medication_id).one()
        assert medication.duration == "99999999"
        assert medication.end_date is None

    def test_recognition_error_fails_upload(
        self, processor, vision_client, session_factory, upload_id, demo_user_id
    ):
        """Test that an OCR failure is terminal and creates nothing."""
        vision_client.recognize.side_effect = RecognitionError("No text detected in image")

        processor.process(UploadJob(upload_id=upload_id, user_id=demo_user_id, image_bytes=b"img"))

        upload = load_upload(session_factory, upload_id)
        assert upload.processing_status == ProcessingStatus.FAILED.value
        assert upload.extracted_text is None
        assert upload.medication_id is None
        assert count_medications(session_factory) == 0

    def test_text_without_name_completes_without_medication(
        self, processor, vision_client, session_factory, upload_id, demo_user_id
    ):
        """Test that no placeholder medication is created when no name was found."""
        vision_client.recognize.return_value = "영수증\n합계 12,000원"

        processor.process(UploadJob(upload_id=upload_id, user_id=demo_user_id, image_bytes=b"img"))

        upload = load_upload(session_factory, upload_id)
        assert upload.processing_status == ProcessingStatus.COMPLETED.value
        assert upload.extracted_text == "영수증\n합계 12,000원"
        assert upload.medication_id is None
        assert count_medications(session_factory) == 0

    def test_unexpected_error_fails_upload(
        self, session_factory, vision_client, upload_id, demo_user_id
    ):
        """Test that errors after OCR roll back and fail the upload."""
        vision_client.recognize.return_value = LABELED_TEXT
        parser = MagicMock()
        parser.parse.side_effect = RuntimeError("boom")
        processor = UploadProcessor(session_factory, vision_client, parser=parser)

        processor.process(UploadJob(upload_id=upload_id, user_id=demo_user_id, image_bytes=b"img"))

        upload = load_upload(session_factory, upload_id)
        assert upload.processing_status == ProcessingStatus.FAILED.value
        assert upload.medication_id is None
        assert count_medications(session_factory) == 0

    def test_missing_upload_creates_nothing(self, processor, vision_client, session_factory, demo_user_id):
        """Test that a job for an unknown upload is dropped quietly."""
        vision_client.recognize.return_value = LABELED_TEXT

        processor.process(UploadJob(upload_id="missing", user_id=demo_user_id, image_bytes=b"img"))

        assert count_medications(session_factory) == 0

    def test_mark_failed(self, processor, session_factory, upload_id):
        processor.mark_failed(upload_id)

        assert load_upload(session_factory, upload_id).processing_status == ProcessingStatus.FAILED.value


class TestUploadWorkerPool:
    """Tests for UploadWorkerPool."""

    @pytest.fixture
    def stub_processor(self):
        return MagicMock(spec=UploadProcessor)

    def make_job(self, upload_id: str) -> UploadJob:
        return UploadJob(upload_id=upload_id, user_id="user-1", image_bytes=b"img")

    def test_processes_submitted_jobs(self, stub_processor):
        """Test that workers drain the queue."""
        pool = UploadWorkerPool(stub_processor, workers=2)
        pool.start()
        try:
            jobs = [self.make_job(f"upload-{i}") for i in range(5)]
            for job in jobs:
                pool.submit(job)
            pool.join()
        finally:
            pool.stop()

        processed = {c.args[0].upload_id for c in stub_processor.process.call_args_list}
        assert processed == {job.upload_id for job in jobs}
        assert pool.pending == 0
        assert not pool.running

    def test_submit_does_not_wait_for_processing(self, stub_processor):
        """Test that submit returns while a job is still being processed."""
        release = threading.Event()
        started = threading.Event()

        def slow_process(job):
            started.set()
            release.wait(timeout=5)

        stub_processor.process.side_effect = slow_process
        pool = UploadWorkerPool(stub_processor, workers=1)
        pool.start()
        try:
            pool.submit(self.make_job("slow"))
            assert started.wait(timeout=5)
            pool.submit(self.make_job("next"))
            assert pool.pending == 1
            release.set()
            pool.join()
        finally:
            release.set()
            pool.stop()

        assert stub_processor.process.call_count == 2

    def test_full_queue_rejects_job(self, stub_processor):
        """Test that a bounded queue refuses jobs beyond its size."""
        pool = UploadWorkerPool(stub_processor, workers=1, max_queue_size=1)
        pool.submit(self.make_job("first"))

        with pytest.raises(UploadQueueFullError):
            pool.submit(self.make_job("second"))

    def test_cancelled_job_is_failed_not_processed(self, stub_processor):
        """Test that a job cancelled while queued never reaches OCR."""
        pool = UploadWorkerPool(stub_processor, workers=1)
        pool.submit(self.make_job("keep"))
        pool.submit(self.make_job("drop"))
        assert pool.cancel("drop") is True

        pool.start()
        try:
            pool.join()
        finally:
            pool.stop()

        stub_processor.process.assert_called_once()
        assert stub_processor.process.call_args.args[0].upload_id == "keep"
        stub_processor.mark_failed.assert_called_once_with("drop")

    def test_cancel_unknown_upload_is_ignored(self, stub_processor):
        """Test that cancelling an upload that is not queued records nothing."""
        pool = UploadWorkerPool(stub_processor, workers=1)

        assert pool.cancel("never-submitted") is False

        pool.submit(self.make_job("never-submitted"))
        pool.start()
        try:
            pool.join()
        finally:
            pool.stop()

        stub_processor.process.assert_called_once()
        stub_processor.mark_failed.assert_not_called()

    def test_cancel_after_processing_is_ignored(self, stub_processor):
        pool = UploadWorkerPool(stub_processor, workers=1)
        pool.start()
        try:
            pool.submit(self.make_job("done"))
            pool.join()
            assert pool.cancel("done") is False
        finally:
            pool.stop()

    def test_rejected_job_cannot_be_cancelled(self, stub_processor):
        pool = UploadWorkerPool(stub_processor, workers=1, max_queue_size=1)
        pool.submit(self.make_job("first"))

        with pytest.raises(UploadQueueFullError):
            pool.submit(self.make_job("second"))

        assert pool.cancel("second") is False
        assert pool.cancel("first") is True

    def test_stop_fails_queued_jobs(self, stub_processor):
        """Test that shutting down fails uploads still waiting in the queue."""
        pool = UploadWorkerPool(stub_processor, workers=1)
        pool.submit(self.make_job("queued-1"))
        pool.submit(self.make_job("queued-2"))

        pool.stop()

        stub_processor.process.assert_not_called()
        failed = [c.args[0] for c in stub_processor.mark_failed.call_args_list]
        assert failed == ["queued-1", "queued-2"]
        assert pool.pending == 0
