"""Analysis service for saved cost optimization results."""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from models import Analysis


class AnalysisService:
    """Service class for analysis records."""

    @staticmethod
    def save_analysis(
        db: Session,
        user_id: str,
        thread_id: Optional[str],
        plan: str,
        metrics: str,
        comment: str,
        result: str
    ) -> Analysis:
        """Persist an analysis and return it with its assigned ID."""
        db_analysis = Analysis(
            user_id=user_id,
            thread_id=thread_id,
            plan=plan,
            metrics=metrics,
            comment=comment,
            result=result
        )

        db.add(db_analysis)
        db.commit()
        db.refresh(db_analysis)

        return db_analysis

    @staticmethod
    def get_latest_analysis(db: Session, user_id: str, thread_id: str) -> Optional[Analysis]:
        return db.query(Analysis).filter(
            Analysis.user_id == user_id,
            Analysis.thread_id == thread_id
        ).order_by(
            desc(Analysis.created_at), desc(Analysis.id)
        ).first()

    @staticmethod
    def list_analyses(db: Session, user_id: str, limit: int = 10) -> List[Analysis]:
        return db.query(Analysis).filter(
            Analysis.user_id == user_id
        ).order_by(
            desc(Analysis.created_at), desc(Analysis.id)
        ).limit(limit).all()
