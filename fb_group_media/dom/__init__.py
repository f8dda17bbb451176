from .base import DOMNode
from .static import StaticNode

__all__ = ["DOMNode", "StaticNode"]
