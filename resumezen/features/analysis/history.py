"""
Analysis history store.

Append-only: records are written once by the orchestrator and only read
afterwards.
"""

import logging
from typing import List

from sqlalchemy import func, insert, select

from resumezen.core.database import get_db_session, resume_analyses
from resumezen.core.errors import NotFoundError
from resumezen.models.analysis import (
    AnalysisBlock,
    AnalysisRecord,
    ContactInformation,
    Education,
    Skills,
    WorkExperience,
)
from resumezen.models.base import ensure_utc

logger = logging.getLogger("resumezen")

MAX_PAGE_SIZE = 100


def _row_to_record(row) -> AnalysisRecord:
    return AnalysisRecord(
        analysis_id=row.analysis_id,
        user_id=row.user_id,
        user_plan_id=row.user_plan_id,
        resume_url=row.resume_url,
        contact_information=ContactInformation.model_validate(row.contact_information or {}),
        skills=Skills.model_validate(row.skills or {}),
        work_experience=[WorkExperience.model_validate(item) for item in row.work_experience or []],
        education=[Education.model_validate(item) for item in row.education or []],
        certifications=list(row.certifications or []),
        summary=row.summary,
        analysis=AnalysisBlock(
            ats_score=row.ats_score,
            strengths=row.strengths or [],
            areas_for_improvement=row.areas_for_improvement or [],
            keywords=row.keywords or [],
        ),
        ai_model=row.ai_model,
        raw_response=row.raw_response,
        created_at=ensure_utc(row.created_at),
    )


def append(record: AnalysisRecord) -> str:
    """Persist a completed analysis and return its id."""
    with get_db_session() as session:
        session.execute(
            insert(resume_analyses).values(
                analysis_id=record.analysis_id,
                user_id=record.user_id,
                user_plan_id=record.user_plan_id,
                resume_url=record.resume_url,
                contact_information=record.contact_information.model_dump(),
                skills=record.skills.model_dump(),
                work_experience=[job.model_dump() for job in record.work_experience],
                education=[edu.model_dump() for edu in record.education],
                certifications=record.certifications,
                summary=record.summary,
                ats_score=record.analysis.ats_score,
                strengths=record.analysis.strengths,
                areas_for_improvement=record.analysis.areas_for_improvement,
                keywords=record.analysis.keywords,
                ai_model=record.ai_model,
                raw_response=record.raw_response,
                created_at=record.created_at,
            )
        )
    logger.info(
        f"[history] appended analysis={record.analysis_id}",
        extra={"user_id": record.user_id, "user_plan_id": record.user_plan_id},
    )
    return record.analysis_id


def list_by_user(user_id: str, limit: int = 50, offset: int = 0) -> List[AnalysisRecord]:
    """A user's analyses, most recent first."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    with get_db_session() as session:
        rows = session.execute(
            select(resume_analyses)
            .where(resume_analyses.c.user_id == user_id)
            .order_by(resume_analyses.c.created_at.desc(), resume_analyses.c.analysis_id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
    return [_row_to_record(row) for row in rows]


def count_by_user(user_id: str) -> int:
    with get_db_session() as session:
        return session.execute(
            select(func.count()).select_from(resume_analyses).where(resume_analyses.c.user_id == user_id)
        ).scalar_one()


def get_analysis(analysis_id: str, user_id: str) -> AnalysisRecord:
    with get_db_session() as session:
        row = session.execute(
            select(resume_analyses)
            .where(resume_analyses.c.analysis_id == analysis_id)
            .where(resume_analyses.c.user_id == user_id)
        ).first()
    if not row:
        raise NotFoundError(f"Analysis {analysis_id} not found")
    return _row_to_record(row)
