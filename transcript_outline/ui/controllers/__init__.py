from .outline_controller import OutlineController

__all__ = ["OutlineController"]
