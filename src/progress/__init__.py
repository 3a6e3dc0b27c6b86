"""Progress module for tracking formation completion."""

from src.progress.models import UserProgress
from src.progress.router import router
from src.progress.schemas import ProgressResponse, ProgressUpdate


__all__ = [
    "ProgressResponse",
    "ProgressUpdate",
    "UserProgress",
    "router",
]
