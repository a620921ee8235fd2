"""Stop conditions and event location.

- :class:`Event` -- scalar condition ``g(state, elapsed)`` with presets for
  elapsed time, epoch reached and orbital element crossings
- :class:`EventDetector` -- brackets and bisects crossings within a step
- :class:`EventCrossing` -- a located event
- :class:`StepWindow` -- the accepted step handed to the detector
"""

from odjax.events.detector import Event, EventCrossing, EventDetector, StepWindow

__all__ = [
    "Event",
    "EventCrossing",
    "EventDetector",
    "StepWindow",
]
