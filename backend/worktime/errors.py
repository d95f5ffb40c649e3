from typing import Any

from fastapi import HTTPException, status


class InvalidTransition(HTTPException):
    """Actor, role or stage does not allow the requested status change."""

    def __init__(self, message: str, *, current_status: str | None = None, action: str | None = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "invalid_transition", "message": message,
                    "current_status": current_status, "action": action},
        )
        self.message = message


class NoSubstituteAvailable(HTTPException):
    """
    An approver still owns outstanding records and nobody on the same
    company/line/role can take them over. The triggering operation aborts.
    """

    def __init__(
        self,
        message: str,
        *,
        record_ids: list[Any],
        employee_names: list[str],
        role: str,
        production_line: str | None,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "no_substitute_available",
                "message": message,
                "pending_count": len(record_ids),
                "record_ids": [str(r) for r in record_ids],
                "employees": employee_names,
                "role": role,
                "production_line": production_line,
            },
        )
        self.message = message
        self.pending_count = len(record_ids)


class NameSnapshotMissing(HTTPException):
    def __init__(self, user_id: Any, tables: list[str]):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "name_snapshot_missing", "user_id": str(user_id), "tables": tables},
        )
