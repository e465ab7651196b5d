"""
Lifecycle state of a dashboard pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar('T')


class PipelineStatus(Enum):
    """Pipeline lifecycle stages."""
    IDLE = 'idle'
    LOADING = 'loading'
    READY = 'ready'
    FAILED = 'failed'


@dataclass(frozen=True)
class PipelineState(Generic[T]):
    """
    Status of one pipeline together with its payload.

    Only READY carries data and only FAILED carries an error; build instances
    through the classmethods to keep that true.
    """
    status: PipelineStatus = PipelineStatus.IDLE
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def idle(cls) -> 'PipelineState[Any]':
        return cls()

    @classmethod
    def loading(cls) -> 'PipelineState[Any]':
        return cls(status=PipelineStatus.LOADING)

    @classmethod
    def ready(cls, data: T) -> 'PipelineState[T]':
        return cls(status=PipelineStatus.READY, data=data)

    @classmethod
    def failed(cls, error: BaseException) -> 'PipelineState[Any]':
        return cls(status=PipelineStatus.FAILED, error=f"{type(error).__name__}: {error}")

    @property
    def is_ready(self) -> bool:
        return self.status is PipelineStatus.READY

    @property
    def is_empty(self) -> bool:
        """Ready, but with nothing to show."""
        return self.is_ready and not self.data

    @property
    def shows_spinner(self) -> bool:
        # Failures have no separate UI and keep the loading indicator
        return not self.is_ready
