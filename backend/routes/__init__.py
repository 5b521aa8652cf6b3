# Flask blueprints
from .search import search_bp

__all__ = ['search_bp']
