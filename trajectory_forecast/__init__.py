from trajectory_forecast.analyzer import AnalyzerNotLoadedError, TrajectoryAnalyzer
from trajectory_forecast.config import STAGE_WEIGHTS

__all__ = ['AnalyzerNotLoadedError', 'TrajectoryAnalyzer', 'STAGE_WEIGHTS']
