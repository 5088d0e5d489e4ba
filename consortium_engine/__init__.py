"""
CONSORTIUM SIMULATION ENGINE
Installment and bid (lance) simulation for consortium plans
"""

from .models import CalcInput, CalcPreferences, CalcResult, RateTable
from .processor import SimulationProcessor, simulate

__all__ = [
    'SimulationProcessor',
    'simulate',
    'CalcInput',
    'CalcPreferences',
    'CalcResult',
    'RateTable',
]
