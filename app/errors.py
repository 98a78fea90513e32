"""
Application errors translated into JSON responses.
Raise an AppError subclass from services; the handler in app.main turns it
into {"error": message} with the matching status code.
"""
from fastapi import status


class AppError(Exception):
    """Error that maps directly to an HTTP status and client-facing message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class GalleryNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class NoPhotosError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "No photos to download"):
        super().__init__(message)


class ClientNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Client not found"):
        super().__init__(message)


class PhotoNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Photo not found"):
        super().__init__(message)
