"""Plan reporting and sensitivity tables"""

from .report import plans_to_frame, probability_sweep

__all__ = ["plans_to_frame", "probability_sweep"]
