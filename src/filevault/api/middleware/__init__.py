"""FileVault API middleware package."""

from filevault.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
