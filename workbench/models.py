"""Request and result types shared by the search and edit engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from workbench.errors import ErrorResponse


@dataclass(frozen=True)
class SearchRequest:
    root_path: Path
    glob_pattern: str | None = None
    path_filter: str | None = None
    content_pattern: str | None = None


@dataclass(frozen=True)
class FileMatch:
    path: str
    matched_lines: list[int] = field(default_factory=list)
    snippets: list[str] = field(default_factory=list)
    total_lines: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"file": self.path}
        if self.matched_lines:
            payload["lines"] = list(self.matched_lines)
            payload["snippets"] = list(self.snippets)
            payload["total_lines"] = self.total_lines
        return payload


@dataclass(frozen=True)
class SearchResult:
    matches: list[FileMatch] = field(default_factory=list)
    failure: ErrorResponse | None = None

    @property
    def error(self) -> str | None:
        return self.failure.describe() if self.failure else None


@dataclass(frozen=True)
class ReplaceExact:
    path: Path
    old_text: str
    new_text: str


@dataclass(frozen=True)
class ReplaceLineRange:
    path: Path
    start_line: int
    end_line: int
    new_text: str


@dataclass(frozen=True)
class AddImport:
    path: Path
    import_path: str
    alias: str | None = None


@dataclass(frozen=True)
class RemoveImport:
    path: Path
    import_path: str


@dataclass(frozen=True)
class AddDeclaration:
    path: Path
    name: str
    declared_type: str | None = None
    value_expr: str | None = None
    is_const: bool = False

    @property
    def keyword(self) -> str:
        return "const" if self.is_const else "var"


@dataclass(frozen=True)
class AddFunction:
    path: Path
    source_code: str


EditRequest = Union[
    ReplaceExact,
    ReplaceLineRange,
    AddImport,
    RemoveImport,
    AddDeclaration,
    AddFunction,
]


@dataclass(frozen=True)
class EditResult:
    success: bool
    message: str = ""
    failure: ErrorResponse | None = None
    changed: bool = False

    @property
    def error(self) -> str | None:
        return self.failure.describe() if self.failure else None


@dataclass(frozen=True)
class ReadResult:
    content: str
    total_lines: int
    file_size: int
    start_line: int
    end_line: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "total_lines": self.total_lines,
            "file_size": self.file_size,
            "start_line": self.start_line,
            "end_line": self.end_line,
        }
