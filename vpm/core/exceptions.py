"""
Application-wide exception hierarchy.

Services raise these; the action boundary (``vpm.core.result.run_action``)
and the blueprint error handlers translate them into typed results and
HTTP status codes in one place.

Usage:
    from vpm.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Project", "User").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Examples: missing required intake fields, a revision request without
    tags or notes, an editor picking a status outside the editor set.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when the caller's role or ownership does not allow an action."""

    def __init__(self, user_id: int | None, action: str, reason: str | None = None):
        who = f"User {user_id}" if user_id is not None else "Anonymous caller"
        msg = f"{who} does not have permission for '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.user_id = user_id
        self.action = action
        self.reason = reason


class StoreUnavailableError(Exception):
    """Raised when the backing database is unreachable or misconfigured."""


class SchemaMismatchError(Exception):
    """Raised at startup when the live schema does not match the models.

    Args:
        missing: ``{table: [columns]}`` for every absent table/column.
            An absent table is reported with the single entry ``"*"``.
        found_version: Schema version recorded in the database, if any.
        expected_version: Schema version the code was built against.
    """

    def __init__(
        self,
        missing: dict[str, list[str]] | None = None,
        found_version: int | None = None,
        expected_version: int | None = None,
    ) -> None:
        self.missing = missing or {}
        self.found_version = found_version
        self.expected_version = expected_version
        parts = []
        if self.missing:
            names = ", ".join(
                f"{table}.{col}" for table, cols in sorted(self.missing.items()) for col in cols
            )
            parts.append(f"missing columns: {names}")
        if expected_version is not None and found_version != expected_version:
            parts.append(f"schema version {found_version} != expected {expected_version}")
        super().__init__("Schema mismatch: " + "; ".join(parts or ["unknown"]))
