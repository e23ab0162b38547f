from __future__ import annotations

import logging
from datetime import UTC, datetime

from authlane.core import errors as api_errors
from authlane.services._shared.errors import AuthenticationError, ServiceError


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a timezone-aware clock shared by every service.
    * Centralize error translation to the API error family.
    * Give each subclass a module-scoped logger as ``self.log``.
    """

    def __init__(self) -> None:
        self.log = logging.getLogger(type(self).__module__)

    @staticmethod
    def now_utc() -> datetime:
        """Return the current time as an aware UTC datetime."""
        return datetime.now(UTC)

    # ------------------------- Error translation ----------------------------

    @staticmethod
    def translate_exceptions(exc: ServiceError) -> api_errors.APIError:
        """
        Map service-level errors to API errors.

        :param exc: Service error raised by a guard, driver or strategy.
        :returns: Matching :class:`~authlane.core.errors.APIError`.
        """
        if isinstance(exc, AuthenticationError):
            if exc.is_configuration_error:
                return api_errors.ServerMisconfigured(exc.message)
            return api_errors.Unauthorized(exc.message, code=exc.kind.value)
        return api_errors.APIError(str(exc) or "Service error", status_code=400)
