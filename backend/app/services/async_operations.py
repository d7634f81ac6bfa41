"""
Async Operation Tracker

Runs long, multi-call jobs (production scheduling, control order dispatch) on
a thread pool and records their progress in the async_operations table.

    submit() -> AsyncOperation(PENDING, 0%)   returned to the caller immediately
    worker   -> PROCESSING (percent, message) ... -> COMPLETED (result JSON) | FAILED (error)

Callers poll by operation_id. The job runs in its own session; progress is
written through a separate short-lived session so that progress commits never
commit a half-finished job.
"""
import json
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.exceptions import FactoryFlowException, NotFoundError
from app.logging_config import get_logger
from app.models.async_operation import AsyncOperation

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], None]
Job = Callable[[Session, ProgressCallback], Dict[str, Any]]


class OperationTracker:
    """Thread-pool job runner with persisted status."""

    def __init__(self, session_factory: sessionmaker, max_workers: Optional[int] = None):
        self.session_factory = session_factory
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.ASYNC_WORKER_COUNT,
            thread_name_prefix="async-op",
        )
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        operation_type: str,
        job: Job,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        initiated_by: Optional[str] = None,
    ) -> AsyncOperation:
        operation_id = str(uuid.uuid4())
        db = self.session_factory()
        try:
            operation = AsyncOperation(
                operation_id=operation_id,
                operation_type=operation_type,
                status=AsyncOperation.STATUS_PENDING,
                entity_type=entity_type,
                entity_id=entity_id,
                progress_percent=0,
                initiated_by=initiated_by,
            )
            db.add(operation)
            db.commit()
            db.refresh(operation)
            db.expunge(operation)
        finally:
            db.close()

        future = self.executor.submit(self._run, operation_id, operation_type, job)
        with self._lock:
            self._futures = {k: f for k, f in self._futures.items() if not f.done()}
            self._futures[operation_id] = future

        logger.info(
            f"Submitted {operation_type} operation {operation_id}",
            extra={"entity_type": entity_type, "entity_id": entity_id},
        )
        return operation

    def wait(self, operation_id: str, timeout: Optional[float] = None) -> None:
        """Block until a job submitted by this tracker has finished."""
        with self._lock:
            future = self._futures.get(operation_id)
        if future is not None:
            future.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    # ========================
    # Worker
    # ========================

    def _run(self, operation_id: str, operation_type: str, job: Job) -> None:
        self._update(
            operation_id,
            status=AsyncOperation.STATUS_PROCESSING,
            started_at=datetime.utcnow(),
            progress_message="Started",
        )

        def progress(percent: int, message: str) -> None:
            self._update(operation_id, progress_percent=max(0, min(100, percent)), progress_message=message)

        db = self.session_factory()
        try:
            result = job(db, progress)
        except FactoryFlowException as e:
            db.rollback()
            logger.warning(f"{operation_type} operation {operation_id} failed: {e.message}")
            self._fail(operation_id, e.message)
        except Exception as e:
            db.rollback()
            logger.error(f"{operation_type} operation {operation_id} crashed: {e}", exc_info=True)
            self._fail(operation_id, str(e) or e.__class__.__name__)
        else:
            self._update(
                operation_id,
                status=AsyncOperation.STATUS_COMPLETED,
                progress_percent=100,
                progress_message="Completed",
                result_data=json.dumps(result, default=str),
                completed_at=datetime.utcnow(),
            )
            logger.info(f"{operation_type} operation {operation_id} completed")
        finally:
            db.close()

    def _fail(self, operation_id: str, message: str) -> None:
        self._update(
            operation_id,
            status=AsyncOperation.STATUS_FAILED,
            error_message=message[:1000],
            completed_at=datetime.utcnow(),
        )

    def _update(self, operation_id: str, **fields: Any) -> None:
        db = self.session_factory()
        try:
            db.query(AsyncOperation).filter(AsyncOperation.operation_id == operation_id).update(
                {**fields, "updated_at": datetime.utcnow()}, synchronize_session=False
            )
            db.commit()
        finally:
            db.close()


# =============================================================================
# Queries
# =============================================================================

def get_operation(db: Session, operation_id: str) -> AsyncOperation:
    operation = db.query(AsyncOperation).filter(AsyncOperation.operation_id == operation_id).first()
    if not operation:
        raise NotFoundError("AsyncOperation", operation_id)
    return operation


def list_active_operations(db: Session) -> List[AsyncOperation]:
    return (
        db.query(AsyncOperation)
        .filter(AsyncOperation.status.in_([AsyncOperation.STATUS_PENDING, AsyncOperation.STATUS_PROCESSING]))
        .order_by(AsyncOperation.created_at)
        .all()
    )


def list_operations_for_entity(db: Session, entity_type: str, entity_id: int) -> List[AsyncOperation]:
    return (
        db.query(AsyncOperation)
        .filter(AsyncOperation.entity_type == entity_type, AsyncOperation.entity_id == entity_id)
        .order_by(AsyncOperation.created_at.desc(), AsyncOperation.id.desc())
        .all()
    )
