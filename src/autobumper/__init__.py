"""autobumper package."""

from .errors import AutobumperError, ConfigurationError, ExecutionError, SinkError
from .execution.runner import ProcessResult, ProcessRunner, call
from .secrets.agent import PLACEHOLDER, SecretAgent, SecretSet
from .secrets.writer import HideSecretsWriter, LogSink, Sink

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AutobumperError",
    "ConfigurationError",
    "ExecutionError",
    "HideSecretsWriter",
    "LogSink",
    "PLACEHOLDER",
    "ProcessResult",
    "ProcessRunner",
    "SecretAgent",
    "SecretSet",
    "Sink",
    "SinkError",
    "call",
]
