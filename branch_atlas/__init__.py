"""
branch-atlas - Branch, commit graph and contributor views of a git repository
"""

from .__version__ import __version__
from .config import Config
from .session import RepositorySession

__all__ = ["Config", "RepositorySession", "__version__"]
