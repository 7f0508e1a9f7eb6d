"""Change propagation: debounced re-evaluation of derived fields.

Key types:
- ChangePropagator: State machine turning raw value changes into passes
- PropagatorState: IDLE, PENDING, EVALUATING, SETTLED
- TimerScheduler: Protocol for debounce timers (asyncio loops satisfy it)
- ManualTimerScheduler: Virtual-clock timers for tests and replays
"""

from ._propagator import ChangePropagator, PropagatorState
from ._timers import ManualTimerScheduler, TimerHandle, TimerScheduler

__all__ = [
    "ChangePropagator",
    "ManualTimerScheduler",
    "PropagatorState",
    "TimerHandle",
    "TimerScheduler",
]
