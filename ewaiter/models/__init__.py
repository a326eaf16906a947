from ewaiter.models.document import Document

__all__ = ["Document"]
