"""
Request pipeline stages.

    base.py         Stage, FunctionStage, Pipeline (the driver loop)
    logging.py      RequestLogger and its output sinks
    body_parser.py  BodyParser (JSON and form bodies)

The static file stage lives with the handlers (handlers/static.py).
"""

from .base import Stage, FunctionStage, Pipeline, stage
from .logging import RequestLogger, OutputSink, StreamSink, LoggerSink
from .body_parser import BodyParser

__all__ = [
    "Stage",
    "FunctionStage",
    "Pipeline",
    "stage",
    "RequestLogger",
    "OutputSink",
    "StreamSink",
    "LoggerSink",
    "BodyParser",
]
