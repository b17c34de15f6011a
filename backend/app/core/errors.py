# backend/app/core/errors.py
from typing import Any, Dict, Optional


class PipelineError(Exception):
    """
    Base class for failures while handling a single queue message.

    `context` holds identifiers (IPs, queue name) that are safe to log;
    never put the full message payload in here.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})


class MalformedMessageError(PipelineError):
    """Body is not a JSON object, or does not validate as the expected record."""


class OracleUnavailableError(PipelineError):
    """Classification oracle failed at transport / HTTP level after retries."""


class GraphStoreError(PipelineError):
    """Graph store query or write failed."""
