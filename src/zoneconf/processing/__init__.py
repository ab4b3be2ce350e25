"""Processing modules for zone intel intake and the daily sweep"""

from .intake import IntelIntake, IntakeResult
from .sweep import DailyDecaySweep, SweepOutcome, SweepResult, sweep_zone

__all__ = [
    "IntelIntake",
    "IntakeResult",
    "DailyDecaySweep",
    "SweepOutcome",
    "SweepResult",
    "sweep_zone",
]
