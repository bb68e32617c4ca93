"""
Mixins for ViewSets to add common functionality.
"""
from rest_framework import status
from rest_framework.response import Response

from .exceptions import ConflictError, ExhaustedError, NotFoundError, ValidationError


class OperationResponseMixin:
    """
    Mixin that turns result dicts from api.utils operations into responses.

    Usage:
        class MyViewSet(OperationResponseMixin, viewsets.GenericViewSet):
            def choose(self, request, pk=None):
                return self.operation_response(cascade.choose(pk, faculty_id))

    Status codes by error kind:
        validation -> 400, not_found -> 404, conflict -> 409
        exhausted  -> 200 (the project now awaits admin allocation)
    """

    ERROR_STATUS = {
        ValidationError.kind: status.HTTP_400_BAD_REQUEST,
        NotFoundError.kind: status.HTTP_404_NOT_FOUND,
        ConflictError.kind: status.HTTP_409_CONFLICT,
        ExhaustedError.kind: status.HTTP_200_OK,
    }

    def operation_response(self, result, success_status=status.HTTP_200_OK):
        if result['ok']:
            return Response(
                {'message': result['message'], **result['data']},
                status=success_status
            )

        http_status = self.ERROR_STATUS.get(result['error_kind'], status.HTTP_400_BAD_REQUEST)
        body = {'error': result['message'], 'error_kind': result['error_kind']}
        if result.get('context'):
            body['context'] = result['context']
        return Response(body, status=http_status)
