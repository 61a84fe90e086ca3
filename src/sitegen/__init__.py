"""
sitegen
Client for a streamed, multi-stage website generation pipeline
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
