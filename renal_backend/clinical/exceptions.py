"""
Clinical engine exceptions.

These exceptions are raised by the clinical services (classification,
visit recording, revision cascade, prescriptions) and are translated to
DRF responses in the views.
"""

from __future__ import annotations

from typing import Any


class ClinicalError(Exception):
    """Base exception for all clinical engine errors."""
    error_code = 'clinical_error'

    def to_dict(self) -> dict[str, Any]:
        return {'detail': str(self), 'error': self.error_code}


class InvalidInput(ClinicalError):
    """
    Raised when a test value is missing, non-numeric or not allowed.

    Always raised before any database write.
    """
    error_code = 'invalid_input'

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result['field'] = self.field
        return result


class NotLinkedError(ClinicalError):
    """
    Raised when an edit targets a test result that does not belong to the visit.

    Attributes:
        test_result_id: The offending test result
        visit_id: The visit the edit was submitted for
    """
    error_code = 'not_linked'

    def __init__(self, *, test_result_id: int, visit_id: int, message: str | None = None):
        self.test_result_id = test_result_id
        self.visit_id = visit_id
        super().__init__(
            message or f'Test result {test_result_id} does not belong to visit {visit_id}'
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result['test_result_id'] = self.test_result_id
        result['visit_id'] = self.visit_id
        return result


class CatalogResolutionError(ClinicalError):
    """
    Raised when a derived (group, code) has no matching Situation row.

    This signals inconsistent reference data, not a user error.

    Attributes:
        group: Derived group (1 or 2)
        code: Derived situation code ('T1'..'T33')
        situation_id: The id the catalog arithmetic expects for (group, code)
        found_id: The id of the row that was found instead, if any
    """
    error_code = 'catalog_resolution'

    def __init__(
        self,
        *,
        group: int,
        code: str,
        situation_id: int | None = None,
        found_id: int | None = None,
        message: str | None = None,
    ):
        self.group = group
        self.code = code
        self.situation_id = situation_id
        self.found_id = found_id
        if message is None:
            message = f'No situation matches group {group}, code {code}'
            if found_id is not None:
                message = (
                    f'Situation for group {group}, code {code} has id {found_id}, '
                    f'expected {situation_id}'
                )
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result['group'] = self.group
        result['code'] = self.code
        if self.situation_id is not None:
            result['situation_id'] = self.situation_id
        if self.found_id is not None:
            result['found_id'] = self.found_id
        return result


class UpdateFailed(ClinicalError):
    """
    Raised when a persistence write did not complete.

    Aborts the remaining steps of the revision.
    """
    error_code = 'update_failed'

    def __init__(self, *, test_result_id: int | None = None, reason: str = '', message: str | None = None):
        self.test_result_id = test_result_id
        self.reason = reason
        if message is None:
            target = f'test result {test_result_id}' if test_result_id is not None else 'record'
            message = f'Failed to update {target}'
            if reason:
                message = f'{message}: {reason}'
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.test_result_id is not None:
            result['test_result_id'] = self.test_result_id
        return result


class VisitNotFound(ClinicalError):
    """Raised when the visit to revise does not exist."""
    error_code = 'visit_not_found'

    def __init__(self, visit_id: int):
        self.visit_id = visit_id
        super().__init__(f'Visit {visit_id} not found')
