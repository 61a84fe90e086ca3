"""Progress reporting for generation jobs."""

from .animator import ProgressAnimator
from .models import ProgressUpdate
from .publisher import ProgressPublisher

__all__ = ["ProgressAnimator", "ProgressPublisher", "ProgressUpdate"]
