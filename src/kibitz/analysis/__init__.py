"""Engine analysis layer: UCI adapter, its transport and output parsing."""

from kibitz.analysis.adapter import AnalysisAdapter
from kibitz.analysis.errors import EngineUnavailableError
from kibitz.analysis.models import AdapterState, EvaluationLine, InfoReport, Score
from kibitz.analysis.parser import parse_bestmove_line, parse_info_line
from kibitz.analysis.settings import AnalysisSettings
from kibitz.analysis.transport import EngineTransport, QProcessTransport

__all__ = [
    "AdapterState",
    "AnalysisAdapter",
    "AnalysisSettings",
    "EngineTransport",
    "EngineUnavailableError",
    "EvaluationLine",
    "InfoReport",
    "QProcessTransport",
    "Score",
    "parse_bestmove_line",
    "parse_info_line",
]
