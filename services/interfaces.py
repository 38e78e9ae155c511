"""
Core interfaces and abstract classes for the image edit API service.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Tuple

from models.requests import EditRequest


class ImageEditorInterface(ABC):
    """Abstract interface for the remote image editor."""

    @abstractmethod
    def __init__(self, config: Dict[str, Any]):
        """Initialize the editor with the remote service configuration."""
        pass

    @abstractmethod
    async def edit_image(self, request: EditRequest) -> str:
        """Edit an image and return the result as a data URL."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the editor can reach the remote service."""
        pass


class RequestProcessorInterface(ABC):
    """Abstract interface for upload and response processing."""

    @abstractmethod
    def validate_instruction(self, instruction: str) -> str:
        """Validate the edit instruction."""
        pass

    @abstractmethod
    def process_image_upload(self, file: Any) -> Tuple[bytes, str]:
        """Read an uploaded image file into bytes and MIME type."""
        pass

    @abstractmethod
    def format_edit_response(self, data_url: str, metadata: Dict[str, Any] = None) -> Any:
        """Format a successful edit response."""
        pass
