from src.solver.attempts import AttemptLog, AttemptRecord
from src.solver.engine import SolverEngine, TickReport

__all__ = ["AttemptLog", "AttemptRecord", "SolverEngine", "TickReport"]
