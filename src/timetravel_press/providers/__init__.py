"""AI Providers - Text (Agno) and Image (google-genai, placeholder) generation."""

from .text import TextProvider
from .image import ImageProvider
from .config import ProviderConfig, load_provider_config

__all__ = [
    "TextProvider",
    "ImageProvider",
    "ProviderConfig",
    "load_provider_config",
]
