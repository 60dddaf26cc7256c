"""Service layer orchestrating the attachment preview cache."""

from .attachment_cache import AttachmentCacheService, DerivativeKind

__all__ = ["AttachmentCacheService", "DerivativeKind"]
