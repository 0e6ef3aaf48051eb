from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for errors raised by the dashboard engine."""


class NotAuthenticatedError(DashboardError):
    """No bearer token is available for a call that requires one."""


class LayoutApiError(DashboardError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmbedDataError(DashboardError):
    """The embed token endpoint returned an incomplete descriptor."""
