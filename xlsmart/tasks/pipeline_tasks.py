"""Celery tasks that run the AI pipelines for an upload session."""
import asyncio
import logging
from typing import List, Optional

from xlsmart.database import SessionLocal
from xlsmart.services.pipelines import (
    assess_skills_for_session,
    assign_roles_for_session,
    standardize_roles_for_session,
)
from xlsmart.services.progress_events import publish_progress
from xlsmart.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def run_role_assignment(
    self,
    session_id: str,
    employee_ids: Optional[List[str]] = None,
    assign_immediately: bool = True,
) -> dict:
    """
    Assign standard roles to the employees of an upload session.

    This runs in a Celery worker, NOT in web request context. The session
    row carries progress; the return value is the final summary.

    Args:
        self: Celery task instance
        session_id: Upload session ID
        employee_ids: Restrict the run to these employees
        assign_immediately: Assign matches directly instead of suggesting them

    Returns:
        Dict with final status and counters
    """
    logger.info(f"🚀 Starting role assignment task: session_id={session_id}")
    db = SessionLocal()
    try:
        result = asyncio.run(
            assign_roles_for_session(
                db,
                session_id,
                employee_ids=employee_ids,
                assign_immediately=assign_immediately,
                publisher=publish_progress,
            )
        )
        logger.info(f"🎉 Role assignment finished: {result.to_dict()}")
        return result.to_dict()
    except Exception as e:
        logger.error(f"💥 Role assignment failed for session {session_id}: {e}", exc_info=True)
        raise
    finally:
        db.close()


@celery_app.task(bind=True)
def run_role_standardization(self, session_id: str) -> dict:
    """Standardize the role catalog stored on an upload session."""
    logger.info(f"🚀 Starting role standardization task: session_id={session_id}")
    db = SessionLocal()
    try:
        result = asyncio.run(
            standardize_roles_for_session(db, session_id, publisher=publish_progress)
        )
        logger.info(f"🎉 Role standardization finished: {result.to_dict()}")
        return result.to_dict()
    except Exception as e:
        logger.error(f"💥 Role standardization failed for session {session_id}: {e}", exc_info=True)
        raise
    finally:
        db.close()


@celery_app.task(bind=True)
def run_skills_assessment(self, session_id: str) -> dict:
    """Run the bulk skills assessment described by an upload session."""
    logger.info(f"🚀 Starting skills assessment task: session_id={session_id}")
    db = SessionLocal()
    try:
        result = asyncio.run(
            assess_skills_for_session(db, session_id, publisher=publish_progress)
        )
        logger.info(f"🎉 Skills assessment finished: {result.to_dict()}")
        return result.to_dict()
    except Exception as e:
        logger.error(f"💥 Skills assessment failed for session {session_id}: {e}", exc_info=True)
        raise
    finally:
        db.close()
