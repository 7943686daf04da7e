"""Background OCR and extraction pipeline for uploaded prescription images."""
import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from pilllog.domains.uploads.models import ProcessingStatus
from pilllog.domains.uploads.prescription import PrescriptionParser, build_medication
from pilllog.domains.uploads.schemas import ImageUploadUpdate
from pilllog.domains.uploads.service import UploadsService
from pilllog.domains.uploads.vision_client import RecognitionError, VisionClient

logger = logging.getLogger(__name__)


@dataclass
class UploadJob:
    """One accepted image waiting for OCR."""
    upload_id: str
    user_id: str
    image_bytes: bytes = field(repr=False)


class UploadQueueFullError(Exception):
    """Raised when the processing queue cannot take another upload."""
    pass


class UploadProcessor:
    """
    Runs OCR, extraction and medication creation for a single upload.

    The upload is expected to be in PROCESSING already. It ends COMPLETED
    once its text is stored (with a linked medication when a drug name was
    found) or FAILED on any error. Nothing is raised to the caller.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        vision_client: VisionClient,
        parser: PrescriptionParser | None = None,
    ):
        self.session_factory = session_factory
        self.vision_client = vision_client
        self.parser = parser or PrescriptionParser()

    def process(self, job: UploadJob) -> None:
        # OCR runs before a session is opened so no database work waits on it
        try:
            extracted_text = self.vision_client.recognize(job.image_bytes)
        except RecognitionError as e:
            logger.warning(f"OCR failed for upload {job.upload_id}: {e}")
            self.mark_failed(job.upload_id)
            return
        except Exception:
            logger.exception(f"Error recognizing upload {job.upload_id}")
            self.mark_failed(job.upload_id)
            return

        with self.session_factory() as db:
            service = UploadsService(db)
            try:
                self._store_results(service, job, extracted_text)
            except Exception:
                logger.exception(f"Error processing upload {job.upload_id}")
                self._fail(db, service, job.upload_id)

    def mark_failed(self, upload_id: str) -> None:
        """Mark an upload failed using a session of its own."""
        with self.session_factory() as db:
            self._fail(db, UploadsService(db), upload_id)

    def _store_results(self, service: UploadsService, job: UploadJob, extracted_text: str) -> None:
        upload = service.update_upload(
            job.upload_id,
            ImageUploadUpdate(
                extracted_text=extracted_text,
                processing_status=ProcessingStatus.COMPLETED,
            ),
        )
        if not upload:
            logger.warning(f"Upload {job.upload_id} disappeared before OCR finished")
            return

        parsed = self.parser.parse(extracted_text)
        if not parsed.name:
            # No drug name recognized, keep the text but do not invent a medication
            logger.info(f"No medication name found in upload {job.upload_id}")
            return

        medication = build_medication(parsed, job.user_id)
        service.link_new_medication(job.upload_id, medication)

    def _fail(self, db: Session, service: UploadsService, upload_id: str) -> None:
        db.rollback()
        try:
            service.update_upload(upload_id, ImageUploadUpdate(processing_status=ProcessingStatus.FAILED))
        except Exception:
            logger.exception(f"Could not mark upload {upload_id} as failed")


class UploadWorkerPool:
    """
    Fixed set of worker threads draining a bounded queue of upload jobs.

    Submitting never waits for processing. Queued jobs can be cancelled
    until a worker picks them up; cancelled and abandoned jobs fail their
    upload.
    """

    def __init__(self, processor: UploadProcessor, workers: int = 2, max_queue_size: int = 100):
        self.processor = processor
        self.workers = workers
        self._queue: queue.Queue[UploadJob | None] = queue.Queue(maxsize=max_queue_size)
        self._threads: list[threading.Thread] = []
        self._queued: set[str] = set()
        self._cancelled: set[str] = set()
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Number of jobs waiting for a worker."""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return bool(self._threads)

    def start(self) -> None:
        if self._threads:
            return
        for i in range(self.workers):
            thread = threading.Thread(target=self._work, name=f"upload-worker-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.info(f"Started {self.workers} upload workers")

    def submit(self, job: UploadJob) -> None:
        with self._lock:
            self._queued.add(job.upload_id)
        try:
            self._queue.put_nowait(job)
        except queue.Full as e:
            with self._lock:
                self._queued.discard(job.upload_id)
            raise UploadQueueFullError(f"Upload queue is full ({self._queue.maxsize} jobs)") from e

    def cancel(self, upload_id: str) -> bool:
        """
        Skip a queued job; its upload is marked failed when dequeued.

        Returns False when the upload is not waiting in the queue.
        """
        with self._lock:
            if upload_id not in self._queued:
                return False
            self._cancelled.add(upload_id)
            return True

    def join(self) -> None:
        """Block until every submitted job has been handled."""
        self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        """Fail whatever is still queued and shut the workers down."""
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                if job is not None:
                    logger.warning(f"Abandoning queued upload {job.upload_id} on shutdown")
                    self.processor.mark_failed(job.upload_id)
            finally:
                self._queue.task_done()

        for _ in self._threads:
            self._queue.put(None)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        with self._lock:
            self._queued.clear()
            self._cancelled.clear()
        logger.info("Upload workers stopped")

    def _claim(self, upload_id: str) -> bool:
        """Take a dequeued job off the books; False if it was cancelled."""
        with self._lock:
            self._queued.discard(upload_id)
            if upload_id in self._cancelled:
                self._cancelled.discard(upload_id)
                return False
            return True

    def _work(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                if not self._claim(job.upload_id):
                    logger.info(f"Upload {job.upload_id} cancelled before processing")
                    self.processor.mark_failed(job.upload_id)
                    continue
                self.processor.process(job)
            except Exception:
                logger.exception("Upload worker error")
            finally:
                self._queue.task_done()
