from .service import DynamicScroller, ScrollResult, reverse_direction

__all__ = ["DynamicScroller", "ScrollResult", "reverse_direction"]
