"""Structured logging for publish runs.

Every record carries a timestamp, level, logger name and message plus
arbitrary keyword fields. Remote URLs routinely embed access tokens, so
messages and field values are masked before they reach the stream.
"""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, TextIO

from pydantic import BaseModel, SecretStr, field_validator


_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    # user:password@ in http(s) remotes
    (re.compile(r"(https?)://[^:/@\s]+:[^@/\s]+@", re.IGNORECASE), r"\1://***:***@"),
    # bare access token used as the user name
    (re.compile(r"(https?)://[^:/@\s]{20,}@", re.IGNORECASE), r"\1://***@"),
    (re.compile(r"token[=:]\s*\S+", re.IGNORECASE), "token=***"),
)


class _MaskedText(BaseModel):
    """Log text with credentials replaced by placeholders."""

    text: SecretStr

    @field_validator("text", mode="before")
    @classmethod
    def _mask(cls, value: Any) -> str:
        text = str(value)
        for pattern, replacement in _SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def mask_secrets(text: str) -> str:
    """Return ``text`` with URL credentials and tokens masked."""
    return _MaskedText.model_validate({"text": text}).text.get_secret_value()


def _mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return mask_secrets(value)
    if isinstance(value, Mapping):
        return {key: _mask_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_mask_value(item) for item in value]
    return value


class StructuredLogger:
    """Emit records as JSON lines or single text lines."""

    def __init__(
        self,
        *,
        name: str,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: str = "DEBUG",
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """Create a logger writing to ``stream`` (stderr by default).

        Records below ``level`` are dropped before formatting. ``context``
        fields are attached to every record.
        """
        normalised_level = level.upper()
        if normalised_level not in _LEVELS:
            msg = f"Unknown log level: {level!r}"
            raise ValueError(msg)
        self._name = name
        self._json_mode = json_mode
        self._stream: TextIO = stream if stream is not None else sys.stderr
        self._level = normalised_level
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._name

    @property
    def json_mode(self) -> bool:
        return self._json_mode

    @property
    def level(self) -> str:
        """Return the lowest level that is emitted."""
        return self._level

    def bind(self, **fields: Any) -> StructuredLogger:
        """Return a logger sharing this one's output that adds ``fields`` to each record."""
        return StructuredLogger(
            name=self._name,
            json_mode=self._json_mode,
            stream=self._stream,
            level=self._level,
            context={**self._context, **fields},
        )

    def debug(self, message: str, **fields: Any) -> None:
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("ERROR", message, fields)

    def _emit(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if _LEVELS[level] < _LEVELS[self._level]:
            return
        masked_fields = {key: _mask_value(value) for key, value in {**self._context, **fields}.items()}
        record = _Record(
            timestamp=datetime.now(UTC).isoformat(),
            level=level,
            logger=self._name,
            message=mask_secrets(message),
            fields=masked_fields,
        )
        self._stream.write((record.as_json() if self._json_mode else record.as_text()) + "\n")
        self._stream.flush()


class _Record(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    fields: dict[str, Any]

    def as_json(self) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "message": self.message,
        }
        payload.update(self.fields)
        return json.dumps(payload, ensure_ascii=False, default=str)

    def as_text(self) -> str:
        line = f"[{self.timestamp}] {self.level:<7} {self.logger}: {self.message}"
        if not self.fields:
            return line
        extras = " ".join(
            f"{key}={json.dumps(value, ensure_ascii=False, default=str)}" for key, value in self.fields.items()
        )
        return f"{line} | {extras}"


__all__ = ["StructuredLogger", "mask_secrets"]
