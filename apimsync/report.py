"""Outcome objects shared by the CLI and the web server."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class PlatformStatus:
    """Connectivity check result for one platform"""
    connected: bool = False
    message: str = ""

    def to_dict(self) -> Dict:
        return {"connected": self.connected, "message": self.message}


@dataclass
class OperationReport:
    """
    Textual report of one operation.

    ``apis`` lists the resources that were processed, ``errors`` collects the
    per-resource failures that were skipped. An operation with errors can still
    have ``result == True``: partial success is allowed.

    ``skipped`` marks an operation that did nothing because a required setting
    was missing; it is reported with ``result == False`` but is not an error.
    """
    operation: str
    result: bool = True
    message: str = ""
    apis: List[str] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    skipped: bool = False

    def add(self, line: str):
        self.lines.append(line)

    def add_error(self, line: str):
        self.errors.append(line)
        self.lines.append(f"  >> {line}")

    def fail(self, message: str, skipped: bool = False) -> "OperationReport":
        self.result = False
        self.message = message
        self.skipped = skipped
        return self

    def skip(self, message: str) -> "OperationReport":
        """No-op because of missing configuration"""
        return self.fail(message, skipped=True)

    def merge(self, other: "OperationReport"):
        self.apis.extend(a for a in other.apis if a not in self.apis)
        self.lines.extend(other.lines)
        self.errors.extend(other.errors)
        if not other.result:
            self.result = False
            self.message = other.message
            self.skipped = other.skipped

    @property
    def partial(self) -> bool:
        return self.result and bool(self.errors)

    def summary(self) -> str:
        if self.message:
            return self.message
        if not self.result:
            return f"{self.operation} failed."
        text = f"{self.operation}: {len(self.apis)} API(s) processed"
        if self.errors:
            text += f", {len(self.errors)} error(s)"
        return text + "."

    def to_dict(self) -> Dict:
        return {
            "result": self.result,
            "message": self.summary(),
            "apis": list(self.apis),
            "errors": list(self.errors),
        }
