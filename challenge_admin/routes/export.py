"""CSV export of meal selections."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import require_dashboard_user
from ..database import get_db
from ..export import export_filename, export_selections_csv
from ..models import Profile
from ..queries import export_catalogs, get_cohort, selections_query
from . import not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["export"])


@router.get("/selections")
def export_selections(
    cohort_id: str | None = Query(None),
    week: int | None = Query(None),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    """Download selections as CSV, optionally narrowed to a cohort and week."""
    try:
        cohort = get_cohort(db_session, cohort_id) if cohort_id else None
        if cohort_id and cohort is None:
            return not_found("Challenge not found")

        selections = selections_query(db_session, cohort_id, week).all()
        body = export_selections_csv(selections, export_catalogs(db_session, cohort, selections))
    except SQLAlchemyError as e:
        logger.error(f"Export failed: {type(e).__name__}: {e}")
        return JSONResponse(status_code=500, content={"error": str(getattr(e, "orig", None) or e)})

    filename = export_filename(week)
    logger.info(f"Exported {len(selections)} selections as {filename}")
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
