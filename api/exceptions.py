"""
Domain errors for faculty allocation and group formation.

Every error carries a `kind` that is copied into operation results
(see api.utils.results) and mapped to HTTP status codes by the views.
"""


class AllocationError(Exception):
    """Base class for expected domain failures."""
    kind = 'error'
    default_message = 'Allocation operation failed'

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class ValidationError(AllocationError):
    """Malformed input rejected before any mutation (priorities, counts, group bounds)."""
    kind = 'validation'
    default_message = 'Invalid input'


class ConflictError(AllocationError):
    """
    A precondition no longer holds.

    Safe to retry after re-reading state. Raised for lost races as well.
    """
    kind = 'conflict'
    default_message = 'The record was changed by another request'


class NotCurrentCandidateError(ConflictError):
    default_message = 'This project is not currently presented to you'


class AlreadyAllocatedError(ConflictError):
    default_message = 'This project is no longer pending allocation'


class ExhaustedError(AllocationError):
    """The cascade ran past the end of the preference list."""
    kind = 'exhausted'
    default_message = 'Awaiting admin allocation'


class NotFoundError(AllocationError):
    kind = 'not_found'
    default_message = 'Not found'


class DivergenceError(AllocationError):
    """
    Project and preference list cursors disagree.

    Internal only: raised by the reconciler's diagnosis and resolved there.
    """
    kind = 'divergence'
    default_message = 'Allocation cursors are out of sync'

    def __init__(self, project_index, preference_index, message=None):
        self.project_index = project_index
        self.preference_index = preference_index
        super().__init__(
            message or f'Indices out of sync: Project={project_index}, Preference={preference_index}',
            project_index=project_index,
            preference_index=preference_index,
        )
