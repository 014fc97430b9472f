from __future__ import annotations


class ServiceError(Exception):
    """Failure raised by the service layer; mapped to an HTTP status in main.create_app."""


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class BadRequestError(ServiceError):
    """The request is well-formed but cannot be served with the current school data."""


class DatasetNotLoadedError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("School dataset has not been loaded; PUT /school-data first")
