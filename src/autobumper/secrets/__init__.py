"""Secret handling: the reloadable agent and the streaming redacting writer."""

from autobumper.secrets.agent import (
    EMPTY_SECRET_SET,
    PLACEHOLDER,
    SecretAgent,
    SecretSet,
    load_secret_file,
)
from autobumper.secrets.writer import HideSecretsWriter, LogSink, Sink, redact_chunk

__all__ = [
    "EMPTY_SECRET_SET",
    "PLACEHOLDER",
    "HideSecretsWriter",
    "LogSink",
    "SecretAgent",
    "SecretSet",
    "Sink",
    "load_secret_file",
    "redact_chunk",
]
