"""
Shared service-layer foundation.

Services hold the business rules of each Django app and stay independent of
views and serializers. They raise the errors defined here for every expected
failure; the API layer maps each error class onto one HTTP status through its
``status_code`` and exposes ``code`` so callers can tell failures apart.

Guidelines
- Keep services stateless; pass dependencies through the constructor.
- Raise a ``ServiceError`` subclass for expected failures, never a bare
  ``Exception``.
- A failed operation must leave every row as it was (wrap writes in
  ``transaction.atomic``).
"""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, Optional


class ServiceError(Exception):
    """Base class for failures a caller can recover from."""

    code = "service_error"
    status_code = 400
    default_detail = "The operation could not be completed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code}


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = 404
    default_detail = "Resource not found"


class ForbiddenError(ServiceError):
    code = "forbidden"
    status_code = 403
    default_detail = "You do not have permission to perform this action"


class ConflictError(ServiceError):
    code = "conflict"
    status_code = 409
    default_detail = "The request conflicts with the current state"


class AlreadyAcceptedError(ConflictError):
    code = "already_accepted"
    default_detail = "This delivery has already been accepted"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"
    default_detail = "This status change is not allowed"


class DuplicateReviewError(ConflictError):
    code = "duplicate_review"
    default_detail = "You have already reviewed this gig"


class ValidationError(ServiceError):
    code = "validation_error"
    status_code = 400
    default_detail = "Invalid input"


class PaymentInitiationError(ServiceError):
    """The payment processor failed, rejected the amount or timed out.

    Usually transient; callers should retry with backoff.
    """

    code = "payment_initiation_failed"
    status_code = 502
    default_detail = "Could not start the payment, please retry"


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class OrderService(BaseService):
            @BaseService.log_performance
            def list_orders(self, user):
                self.logger.info(f"Listing orders for {user.id}")
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Expected failures (``ServiceError``) are logged as warnings, anything
        else as an error with traceback. The exception is always re-raised.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms
                self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")
                return result

            except ServiceError as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.warning(f"{method_name} failed with '{e.code}' in {elapsed_time:.2f}ms: {e.detail}")
                raise

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper
