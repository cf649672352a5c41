"""Exceptions raised by the maze core."""


class MazeSimError(Exception):
    """Base class for maze simulation errors."""


class ConfigurationError(MazeSimError, ValueError):
    """Raised for degenerate maze sizes, empty grids or unknown presets."""


class IllegalTransitionError(MazeSimError):
    """Raised when the game lifecycle is asked for a transition it does not allow."""

    def __init__(self, state, event):
        super().__init__(f"cannot apply {event.name} while in {state.name}")
        self.state = state
        self.event = event
