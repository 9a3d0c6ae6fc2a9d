"""
chartlens - AI analysis of trading-chart images

Sends chart screenshots with a prompt to a vision-capable model (Gemini by
default, OpenRouter or Ollama optionally) and chains the results across
timeframes into a trade recommendation.

Library usage:
- ChartAnalyzer owns the response cache, in-flight de-duplication, the
  rate-limited dispatcher and the retrying invoker. Build one per process, or
  use get_analyzer() / analyze_chart() for the shared instance.
- Configuration can be passed explicitly (ChartAnalyzer(config=my_config)) or
  via the shared config: get_config() / set_config().
- run_timeframe_analysis() runs the 4h -> 1h -> 15min -> 5min -> final chain.
- Logging: configure_logging(verbose_level, quiet) or set_verbosity(0|1|2).
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("chartlens")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from chartlens.core.analyzer import ChartAnalyzer, analyze_chart, get_analyzer, set_analyzer
from chartlens.core.config import DEFAULT_MODEL, DEFAULT_PROVIDER, Config, get_config, set_config
from chartlens.core.models import AnalysisRequest, ChartImage
from chartlens.core.workflow import TimeframeReport, run_timeframe_analysis
from chartlens.logging_config import configure_logging, set_verbosity
from chartlens.utils.cache import ResponseCache
from chartlens.utils.exceptions import (
    ChartlensError,
    ConfigurationError,
    EncodingError,
    NetworkError,
    QueueTimeoutError,
    RemoteError,
    RequestTimeoutError,
    TerminalRemoteError,
    TimeframeAnalysisError,
    TransientRemoteError,
    ValidationError,
)

__all__ = [
    "AnalysisRequest",
    "ChartAnalyzer",
    "ChartImage",
    "ChartlensError",
    "Config",
    "ConfigurationError",
    "DEFAULT_MODEL",
    "DEFAULT_PROVIDER",
    "EncodingError",
    "NetworkError",
    "QueueTimeoutError",
    "RemoteError",
    "RequestTimeoutError",
    "ResponseCache",
    "TerminalRemoteError",
    "TimeframeAnalysisError",
    "TimeframeReport",
    "TransientRemoteError",
    "ValidationError",
    "analyze_chart",
    "configure_logging",
    "get_analyzer",
    "get_config",
    "run_timeframe_analysis",
    "set_analyzer",
    "set_config",
    "set_verbosity",
]
