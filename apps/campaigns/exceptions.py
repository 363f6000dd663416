import logging
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SearchIndexError(Exception):
    """Transport or protocol failure talking to the search index."""


class SearchIndexUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Search index is currently being updated. Please try again in a few moments."
    default_code = "search_index_unavailable"

    def __init__(self, detail=None, reason=None):
        super().__init__(detail)
        self.reason = reason


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if isinstance(exc, SearchIndexUnavailable) and response is not None:
        reason = exc.reason.value if exc.reason is not None else None
        logger.warning(f"Owner search refused while index unavailable: {reason}")
        response.data['reason'] = reason
        response['Retry-After'] = '30'

    return response
