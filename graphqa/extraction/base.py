"""Base class for LLM oracles and the structured-response retry contract."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

import numpy as np
from pydantic import ConfigDict, TypeAdapter, ValidationError
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from ..errors import OracleProtocolError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class ResponseParseError(ValueError):
    """An oracle response did not have the expected shape."""


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    text = text.strip()
    match = _CODE_FENCE.match(text)
    return match.group(1).strip() if match else text


def json_validator(type_: Any, coerce_numbers: bool = False) -> Callable[[str], Any]:
    """Build a validator that parses a JSON response into ``type_``.

    Args:
        type_: Target type understood by pydantic (model, list, tuple...)
        coerce_numbers: Accept JSON numbers where strings are expected

    Returns:
        Callable raising ResponseParseError on malformed input
    """
    config = ConfigDict(coerce_numbers_to_str=True) if coerce_numbers else None
    adapter = TypeAdapter(type_, config=config)

    def validate(raw: str):
        try:
            return adapter.validate_json(strip_code_fences(raw))
        except ValidationError as e:
            raise ResponseParseError(str(e)) from e

    return validate


def non_empty_text(raw: str) -> str:
    """Validator accepting any non-blank completion."""
    if raw is None or not raw.strip():
        raise ResponseParseError("Empty completion")
    return raw.strip()


class BaseOracle(ABC):
    """Abstract text-generation and embedding service.

    Subclasses implement the transport (``complete`` and ``embed``); every
    structured call goes through ``request`` so that all oracle-backed
    operations share one parse-validate-retry policy.
    """

    def __init__(self, max_attempts: int = 3, backoff_seconds: float = 0.5):
        """Initialize the oracle.

        Args:
            max_attempts: Attempts before giving up on unparseable responses
            backoff_seconds: Base delay of the exponential backoff, 0 disables it
        """
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    @abstractmethod
    def complete(self, prompt: str, model: Optional[str] = None) -> str:
        """Generate a completion for ``prompt``.

        Args:
            prompt: Input prompt
            model: Optional model override

        Returns:
            Raw completion text
        """
        pass

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Embed ``text`` into a vector."""
        pass

    def _wait(self):
        if not self.backoff_seconds:
            return wait_none()
        return wait_exponential(multiplier=self.backoff_seconds, max=self.backoff_seconds * 8)

    def request(
        self,
        prompt: str,
        validate: Callable[[str], T],
        operation: str = "oracle",
        model: Optional[str] = None
    ) -> T:
        """Send ``prompt`` and validate the response, retrying on parse failures.

        Only ResponseParseError triggers a retry; transport errors propagate
        immediately.

        Args:
            prompt: Prompt text
            validate: Parses the raw completion, raising ResponseParseError
            operation: Name used in log lines and errors
            model: Optional model override

        Returns:
            Whatever ``validate`` returns

        Raises:
            OracleProtocolError: if every attempt produced an unparseable response
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception_type(ResponseParseError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            for attempt in retrying:
                with attempt:
                    raw = self.complete(prompt, model=model)
                    logger.debug("%s response: %s", operation, raw)
                    return validate(raw)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise OracleProtocolError(operation, self.max_attempts, last_error) from last_error
