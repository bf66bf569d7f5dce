from .visualization import (
    CanvasParams, render_association, draw_status_text, show_and_save_association
)

__all__ = [
    "CanvasParams", "render_association", "draw_status_text", "show_and_save_association"
]
