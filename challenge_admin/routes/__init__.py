"""HTTP routers for the dashboard API."""

from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..actions import execute_action
from ..models import Profile

# error_type -> HTTP status for action results
ERROR_STATUS = {
    "validation": 400,
    "unauthorized": 403,
    "not_found": 404,
    "integrity": 409,
    "store": 500,
}


def action_response(result: dict, success_status: int = 200) -> JSONResponse:
    """Turn an action result dict into a JSON response."""
    if "error" in result:
        status_code = ERROR_STATUS.get(result.get("error_type"), 400)
        return JSONResponse(status_code=status_code, content={"error": result["error"]})
    return JSONResponse(status_code=success_status, content=result)


def run_action(
    action: str,
    params: dict,
    db_session: Session,
    actor: Profile,
    identity=None,
    success_status: int = 200,
) -> JSONResponse:
    """Dispatch a mutation and commit it before responding."""
    result = execute_action(action, params, db_session, actor=actor, identity=identity)
    if "error" not in result:
        db_session.commit()
    return action_response(result, success_status)


def not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": message})
