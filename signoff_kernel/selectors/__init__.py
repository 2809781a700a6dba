"""Read-only selectors."""

from signoff_kernel.selectors.base import BaseSelector
from signoff_kernel.selectors.document_selector import DocumentSelector

__all__ = ["BaseSelector", "DocumentSelector"]
