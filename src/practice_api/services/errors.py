from __future__ import annotations


class AppError(Exception):
    """Operational failure whose message is safe to show to the client."""

    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.is_operational = True
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"No {resource.lower()} found with id '{identifier}'", 404)
