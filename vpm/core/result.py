"""
Action boundary — one transaction per state-changing operation.

Every workflow/message/admin action is invoked through ``run_action``. The
action performs its primary write plus derived writes (activity, revisions,
system messages) with ``flush()``; ``run_action`` commits once on success and
rolls everything back on any failure, returning a typed ``ActionResult``
instead of raising.

Usage:
    from vpm.core.result import run_action

    result = run_action(workflow.assign_project, actor, project_id, editor_id, due_at)
    if not result.ok:
        return result_response(result)
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from vpm.core.exceptions import (
    NotFoundError,
    PermissionDenied,
    StoreUnavailableError,
    ValidationError,
)
from vpm.models import db

logger = logging.getLogger(__name__)


class ResultKind(str, enum.Enum):
    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class ActionResult:
    kind: ResultKind
    value: Any = None
    message: str | None = None
    details: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.OK

    @classmethod
    def success(cls, value=None) -> "ActionResult":
        return cls(ResultKind.OK, value=value)

    @classmethod
    def failure(cls, kind: ResultKind, message: str, details: dict | None = None) -> "ActionResult":
        return cls(kind, message=message, details=details or {})


def run_action(fn, *args, **kwargs) -> ActionResult:
    """Run *fn* inside a single transaction and map failures to a result.

    ValidationError    -> VALIDATION_ERROR
    PermissionDenied   -> PERMISSION_DENIED
    NotFoundError      -> NOT_FOUND
    StoreUnavailable / SQLAlchemyError -> STORE_ERROR
    """
    name = getattr(fn, "__name__", "action")
    try:
        value = fn(*args, **kwargs)
        db.session.commit()
        return ActionResult.success(value)
    except ValidationError as exc:
        db.session.rollback()
        logger.info("%s rejected: %s", name, exc)
        return ActionResult.failure(ResultKind.VALIDATION_ERROR, str(exc), exc.details)
    except PermissionDenied as exc:
        db.session.rollback()
        logger.warning("%s denied: %s", name, exc)
        return ActionResult.failure(ResultKind.PERMISSION_DENIED, str(exc))
    except NotFoundError as exc:
        db.session.rollback()
        logger.info("%s: %s", name, exc)
        return ActionResult.failure(ResultKind.NOT_FOUND, str(exc))
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("%s integrity error: %s", name, exc.orig)
        return ActionResult.failure(ResultKind.STORE_ERROR, "Duplicate or constraint violation")
    except (SQLAlchemyError, StoreUnavailableError):
        db.session.rollback()
        logger.exception("%s failed at the data store", name)
        return ActionResult.failure(ResultKind.STORE_ERROR, "Data store unavailable")
