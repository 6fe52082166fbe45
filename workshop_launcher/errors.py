"""
Error taxonomy shared by the pipeline, the provisioning clients and the CLI.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence


class WorkshopError(RuntimeError):
    """Base class for failures reported to the user with a non-zero exit."""


class SchemaViolation(WorkshopError):
    """A value did not conform to its declared structural schema."""

    def __init__(self, subject: str, boundary: str, errors: Sequence[str]) -> None:
        self.subject = subject
        self.boundary = boundary
        self.errors = list(errors)
        detail = "; ".join(self.errors) or "invalid value"
        super().__init__(f"{subject}: {boundary} does not match schema ({detail})")


class TransportError(WorkshopError):
    """Non-2xx response or network failure from a remote service."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        self.status_code = status_code
        self.payload = payload
        if payload is not None:
            message = f"{message}: {payload}"
        super().__init__(message)


class PreconditionError(WorkshopError):
    """Required local input is missing; raised before any remote call."""


class ProvisioningFailed(WorkshopError):
    """A provisioning stage failed; `created` lists resources left in place."""

    def __init__(self, stage: str, cause: BaseException, created: Optional[List[Any]] = None) -> None:
        self.stage = stage
        self.cause = cause
        self.created = list(created or [])
        super().__init__(f"{stage} failed: {cause}")
