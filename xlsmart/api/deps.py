"""Shared request dependencies."""
import logging
from contextlib import contextmanager
from typing import Callable, List, Optional

from fastapi import Depends, Header, UploadFile

from xlsmart.config import get_settings
from xlsmart.exceptions import TaskQueueError, ValidationError, XLSmartError
from xlsmart.services.llm_client import LLMClient, LLMConfig
from xlsmart.services.session_store import SessionStore
from xlsmart.services.spreadsheet_ingestor import SheetData, read_spreadsheet

MAX_UPLOAD_BYTES = 100 * 1024 * 1024  # 100MB

logger = logging.getLogger(__name__)


def get_current_user(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Acting user id, forwarded by the auth gateway. Null when absent."""
    return x_user_id or None


def require_llm_config() -> LLMConfig:
    """Fail before any session is created when the LLM proxy is not configured."""
    return LLMConfig.from_settings(get_settings())


def get_llm_client(config: LLMConfig = Depends(require_llm_config)) -> LLMClient:
    return LLMClient(config)


async def read_uploaded_sheets(files: List[UploadFile]) -> List[SheetData]:
    """Read every uploaded spreadsheet, rejecting oversized files."""
    sheets = []
    for file in files:
        content = await file.read()
        if len(content) > MAX_UPLOAD_BYTES:
            raise ValidationError(f"File too large: {file.filename} (max 100MB)")
        sheets.extend(read_spreadsheet(file.filename, content))
    return sheets


@contextmanager
def fail_session_unless_queued(
    store: SessionStore,
    session_id: str,
    action: str,
    cleanup: Optional[Callable[[], None]] = None,
):
    """
    Guard the work that hands a session to a worker.

    On any error ``cleanup`` runs first, then the session is marked failed so
    it never sits in a running status with nothing processing it.
    """
    try:
        yield
    except Exception as e:
        message = e.message if isinstance(e, XLSmartError) else f"Could not {action}: {e}"
        logger.error(f"💥 {message} (session {session_id})", exc_info=True)
        if cleanup is not None:
            cleanup()
        store.fail(session_id, message)
        if isinstance(e, XLSmartError):
            raise
        raise TaskQueueError(message) from e
