from .dispatcher import Dispatcher

__all__ = ("Dispatcher",)
