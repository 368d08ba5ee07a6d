from __future__ import annotations
from typing import Any, List, Optional

import structlog


class DiagnosticTrail:
    """
    Per-invocation record of parse/normalization anomalies. Every entry is kept
    as a "[Severity] message" line and forwarded to a structlog logger.
    """

    def __init__(self, logger: Optional[Any] = None, **context: Any) -> None:
        self.lines: List[str] = []
        log = logger or structlog.get_logger(__name__)
        self._log = log.bind(**context) if context else log

    def _add(self, severity: str, event: str, kw: dict) -> None:
        detail = ", ".join(f"{k}={v}" for k, v in kw.items())
        self.lines.append(f"[{severity}] {event}" + (f" ({detail})" if detail else ""))

    def error(self, event: str, **kw: Any) -> None:
        self._add("Error", event, kw)
        self._log.error(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._add("Warn", event, kw)
        self._log.warning(event, **kw)

    warn = warning

    def info(self, event: str, **kw: Any) -> None:
        self._add("Info", event, kw)
        self._log.info(event, **kw)

    def absorb(self, lines: List[str]) -> None:
        # Lines from a nested trail; already logged there
        self.lines.extend(lines)

    @property
    def has_errors(self) -> bool:
        return any(line.startswith("[Error]") for line in self.lines)

    def dump(self) -> list[str]:
        return list(self.lines)


def ensure_trail(trace: Optional[Any]) -> Any:
    return trace if trace is not None else DiagnosticTrail()
