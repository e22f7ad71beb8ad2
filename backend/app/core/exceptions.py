"""
Unified base exception classes for all services.

Each service extends ServiceError with its own base (e.g. OrderServiceError,
CouponServiceError) so routers can catch one type per service and map
`status_code` straight onto the HTTP response.
"""


class ServiceError(Exception):
    """Base exception for all service-layer errors."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """A referenced record does not exist (or is not visible to the caller)."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found", 404)
