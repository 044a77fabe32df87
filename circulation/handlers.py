import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from circulation.exceptions import CirculationError, TransientError

logger = logging.getLogger(__name__)


def circulation_exception_handler(exc, context):
    """Render circulation errors as `{"error", "code"}`; defer the rest to DRF."""
    if not isinstance(exc, CirculationError):
        return exception_handler(exc, context)

    headers = {}
    if isinstance(exc, TransientError):
        headers["Retry-After"] = str(exc.retry_after)
        logger.error(f"Transient failure in {context.get('view').__class__.__name__}: {exc}")

    return Response(
        {"error": exc.detail, "code": exc.code},
        status=exc.status_code,
        headers=headers,
    )
