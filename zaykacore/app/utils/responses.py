from typing import Any, Dict

from ..exceptions import CoreError


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Return an error envelope."""

    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = details
    return {"ok": False, "error": error}


def core_err(exc: CoreError) -> Dict[str, Any]:
    """Return the error envelope for a :class:`CoreError`."""
    return {"ok": False, "error": exc.to_dict()}
