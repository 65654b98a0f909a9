from .state_file import StateFileError, StateFileRepository

__all__ = ["StateFileError", "StateFileRepository"]
