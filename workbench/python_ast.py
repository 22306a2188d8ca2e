"""Structured edits of Python modules driven by the ``ast`` tree.

Each operation locates its target with ``ast.parse``, serializes the changed
node (``ast.unparse`` or the caller's own fragment) and splices the text back
at the node's recorded position, so comments and layout elsewhere in the
module survive. Every operation returns ``(new_source, message)``; a
``new_source`` of ``None`` means the edit was a no-op.
"""

from __future__ import annotations

import ast
import keyword
import logging
import re
import textwrap
from pathlib import Path
from typing import Optional, Tuple

import black

from workbench.errors import (
    InvalidExpressionError,
    InvalidFragmentError,
    LineRangeError,
    SourceSyntaxError,
)
from workbench.models import (
    AddDeclaration,
    AddFunction,
    AddImport,
    RemoveImport,
    ReplaceLineRange,
)

logger = logging.getLogger(__name__)

PYTHON_SUFFIXES = {".py", ".pyi"}
FRAGMENT_WRAPPER = "async def __fragment__():\n"

_LINE_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+\Z")
_FUNCTION_TYPES = (ast.FunctionDef, ast.AsyncFunctionDef)

EditOutcome = Tuple[Optional[str], str]


def is_python_source(path: Path) -> bool:
    return path.suffix.lower() in PYTHON_SUFFIXES


def parse_source(source: str, filename: str = "<edited>") -> ast.Module:
    """Parse ``source`` or raise ``SourceSyntaxError`` describing where it broke.

    The tree is also compiled, which catches what the grammar alone accepts:
    ``return`` or ``await`` outside a function, ``break`` outside a loop,
    misplaced ``nonlocal`` and late ``__future__`` imports.
    """
    try:
        tree = ast.parse(source, filename=filename)
        compile(tree, filename, "exec", dont_inherit=True)
        return tree
    except SyntaxError as exc:
        raise SourceSyntaxError(
            f"Edited code is not valid Python (line {exc.lineno}: {exc.msg}). "
            "The file was left unchanged; fix the code and retry.",
            {"line": exc.lineno, "reason": exc.msg},
        ) from exc
    except ValueError as exc:
        raise SourceSyntaxError(
            f"Edited code is not valid Python ({exc}). The file was left unchanged.",
        ) from exc


def format_source(source: str, *, is_stub: bool = False) -> str:
    """Format with black, keeping the unformatted text when black refuses it."""
    try:
        return black.format_str(source, mode=black.Mode(is_pyi=is_stub))
    except (black.InvalidInput, ValueError) as exc:
        logger.warning(
            "black could not format edited source, keeping it as is: %s", exc
        )
        return source


def _source_lines(source: str) -> list[str]:
    return _LINE_RE.findall(source)


def _newline(source: str) -> str:
    return "\r\n" if "\r\n" in source else "\n"


def _char_offset(lines: list[str], lineno: int, col_offset: int) -> int:
    """Map an ast (line, utf-8 byte column) position to a string index."""
    prefix = sum(len(line) for line in lines[: lineno - 1])
    if lineno - 1 >= len(lines):
        return prefix
    line_bytes = lines[lineno - 1].encode("utf-8")
    return prefix + len(line_bytes[:col_offset].decode("utf-8", errors="ignore"))


def _insert_line(source: str, index: int, text: str) -> str:
    lines = _source_lines(source)
    newline = _newline(source)
    if 0 < index <= len(lines) and not lines[index - 1].endswith(("\n", "\r")):
        lines[index - 1] += newline
    lines.insert(index, text + newline)
    return "".join(lines)


def _append_block(source: str, block: str, blank_lines: int) -> str:
    newline = _newline(source)
    body = source.rstrip()
    if not body:
        return block + newline
    return body + newline * (blank_lines + 1) + block + newline


def _is_docstring(statement: ast.stmt) -> bool:
    return (
        isinstance(statement, ast.Expr)
        and isinstance(statement.value, ast.Constant)
        and isinstance(statement.value.value, str)
    )


def _import_insertion_index(tree: ast.Module, source: str) -> int:
    """Line index after the docstring and the leading import block."""
    body = tree.body
    start = 0
    position = 0
    if body and _is_docstring(body[0]):
        position = body[0].end_lineno or body[0].lineno
        start = 1
    for statement in body[start:]:
        if not isinstance(statement, (ast.Import, ast.ImportFrom)):
            break
        position = statement.end_lineno or statement.lineno
    if position == 0:
        lines = _source_lines(source)
        while position < len(lines) and lines[position].lstrip().startswith("#"):
            position += 1
    return position


def _parse_expression(raw: str, field_name: str) -> ast.expr:
    try:
        return ast.parse(raw.strip(), mode="eval").body
    except SyntaxError as exc:
        raise InvalidExpressionError(
            f"Invalid expression for {field_name}: {exc.msg}. Provide a single "
            "Python expression such as '\"hello\"' or 'dict()'.",
            {"field": field_name, "value": raw},
        ) from exc


def _check_identifier(name: str, field_name: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise InvalidExpressionError(
            f"{field_name} '{name}' is not a valid Python identifier.",
            {"field": field_name, "value": name},
        )


def _top_level_imports(tree: ast.Module, import_path: str) -> list[ast.Import]:
    return [
        statement
        for statement in tree.body
        if isinstance(statement, ast.Import)
        and any(alias.name == import_path for alias in statement.names)
    ]


def add_import(source: str, tree: ast.Module, edit: AddImport) -> EditOutcome:
    statement = f"import {edit.import_path}"
    if edit.alias:
        statement += f" as {edit.alias}"
    try:
        ast.parse(statement)
    except SyntaxError as exc:
        raise InvalidExpressionError(
            f"'{edit.import_path}' is not a valid module path"
            + (f" or '{edit.alias}' is not a valid alias" if edit.alias else "")
            + ".",
            {"import_path": edit.import_path, "alias": edit.alias},
        ) from exc

    if _top_level_imports(tree, edit.import_path):
        return None, f"Import '{edit.import_path}' already exists"

    index = _import_insertion_index(tree, source)
    updated = _insert_line(source, index, statement)
    if edit.alias:
        return updated, f"Added import {edit.alias} '{edit.import_path}'"
    return updated, f"Added import '{edit.import_path}'"


def _shares_lines(tree: ast.Module, target: ast.stmt) -> bool:
    end = target.end_lineno or target.lineno
    for statement in tree.body:
        if statement is target:
            continue
        other_end = statement.end_lineno or statement.lineno
        if statement.lineno <= end and other_end >= target.lineno:
            return True
    return False


def _remove_statement(source: str, tree: ast.Module, statement: ast.stmt) -> str:
    lines = _source_lines(source)
    end_lineno = statement.end_lineno or statement.lineno
    if not _shares_lines(tree, statement):
        del lines[statement.lineno - 1 : end_lineno]
        return "".join(lines)

    start = _char_offset(lines, statement.lineno, statement.col_offset)
    end = _char_offset(lines, end_lineno, statement.end_col_offset or 0)
    trailing = re.match(r"[ \t]*;[ \t]*", source[end:])
    if trailing:
        end += trailing.end()
    else:
        leading = re.search(r"[ \t]*;[ \t]*\Z", source[:start])
        if leading:
            start = leading.start()
    return source[:start] + source[end:]


def _replace_statement(source: str, statement: ast.stmt, replacement: str) -> str:
    lines = _source_lines(source)
    start = _char_offset(lines, statement.lineno, statement.col_offset)
    end = _char_offset(
        lines, statement.end_lineno or statement.lineno, statement.end_col_offset or 0
    )
    return source[:start] + replacement + source[end:]


def remove_import(source: str, tree: ast.Module, edit: RemoveImport) -> EditOutcome:
    targets = _top_level_imports(tree, edit.import_path)
    if not targets:
        return None, f"Import '{edit.import_path}' not found"

    # Bottom-up so earlier positions stay valid.
    updated = source
    for statement in sorted(targets, key=lambda node: node.lineno, reverse=True):
        remaining = [
            alias for alias in statement.names if alias.name != edit.import_path
        ]
        if remaining:
            replacement = ast.unparse(ast.Import(names=remaining))
            updated = _replace_statement(updated, statement, replacement)
        else:
            updated = _remove_statement(updated, tree, statement)
    return updated, f"Removed import '{edit.import_path}'"


def _target_names(target: ast.expr) -> list[str]:
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, (ast.Tuple, ast.List)):
        names: list[str] = []
        for element in target.elts:
            names.extend(_target_names(element))
        return names
    if isinstance(target, ast.Starred):
        return _target_names(target.value)
    return []


def _is_final(annotation: ast.expr) -> bool:
    if isinstance(annotation, ast.Subscript):
        annotation = annotation.value
    if isinstance(annotation, ast.Name):
        return annotation.id == "Final"
    if isinstance(annotation, ast.Attribute):
        return annotation.attr == "Final"
    return False


def _declared_names(tree: ast.Module, *, constants: bool) -> set[str]:
    names: set[str] = set()
    for statement in tree.body:
        if isinstance(statement, ast.AnnAssign):
            if _is_final(statement.annotation) == constants:
                names.update(_target_names(statement.target))
        elif isinstance(statement, ast.Assign) and not constants:
            for target in statement.targets:
                names.update(_target_names(target))
    return names


def _final_reference(tree: ast.Module) -> str | None:
    """Name under which ``typing.Final`` is reachable, if it already is."""
    for statement in tree.body:
        if isinstance(statement, ast.ImportFrom) and statement.module == "typing":
            for alias in statement.names:
                if alias.name == "Final":
                    return alias.asname or "Final"
        elif isinstance(statement, ast.Import):
            for alias in statement.names:
                if alias.name == "typing":
                    return f"{alias.asname or 'typing'}.Final"
    return None


def add_declaration(
    source: str, tree: ast.Module, edit: AddDeclaration
) -> EditOutcome:
    _check_identifier(edit.name, "var_name")
    if edit.name in _declared_names(tree, constants=edit.is_const):
        return None, f"{edit.keyword.title()} '{edit.name}' already exists"

    value = (
        _parse_expression(edit.value_expr, "var_value")
        if edit.value_expr
        else None
    )
    annotation = (
        _parse_expression(edit.declared_type, "var_type")
        if edit.declared_type
        else None
    )

    final_reference = None
    if edit.is_const:
        final_reference = _final_reference(tree)
        final = ast.parse(final_reference or "Final", mode="eval").body
        if annotation is not None:
            annotation = ast.Subscript(value=final, slice=annotation, ctx=ast.Load())
        else:
            annotation = final

    target = ast.Name(id=edit.name, ctx=ast.Store())
    if annotation is not None:
        node: ast.stmt = ast.AnnAssign(
            target=target, annotation=annotation, value=value, simple=1
        )
    else:
        node = ast.Assign(targets=[target], value=value, type_comment=None)

    updated = _append_block(source, ast.unparse(node), blank_lines=1)
    if edit.is_const and final_reference is None:
        index = _import_insertion_index(tree, source)
        updated = _insert_line(updated, index, "from typing import Final")
    return updated, f"Added {edit.keyword} '{edit.name}'"


def _parse_fragment(code: str) -> tuple[str, ast.Module]:
    fragment = textwrap.dedent(code).strip("\n")
    try:
        return fragment, ast.parse(fragment)
    except SyntaxError as exc:
        raise InvalidFragmentError(
            f"Invalid Python code provided (line {exc.lineno}: {exc.msg}). "
            "Provide one complete function definition.",
            {"line": exc.lineno, "reason": exc.msg},
        ) from exc


def add_function(source: str, tree: ast.Module, edit: AddFunction) -> EditOutcome:
    fragment, fragment_tree = _parse_fragment(edit.source_code)
    if len(fragment_tree.body) != 1 or not isinstance(
        fragment_tree.body[0], _FUNCTION_TYPES
    ):
        raise InvalidFragmentError(
            "code must contain exactly one top-level function definition "
            "('def' or 'async def', decorators allowed) and nothing else.",
            {"statements": len(fragment_tree.body)},
        )

    name = fragment_tree.body[0].name
    for statement in tree.body:
        if isinstance(statement, _FUNCTION_TYPES) and statement.name == name:
            return None, f"Function '{name}' already exists"

    return _append_block(source, fragment, blank_lines=2), f"Added function '{name}'"


def validate_block(code: str) -> None:
    """Check that a replacement block parses inside a nominal function body."""
    wrapped = FRAGMENT_WRAPPER + textwrap.indent(textwrap.dedent(code), "    ")
    try:
        ast.parse(wrapped)
    except SyntaxError as exc:
        line = exc.lineno - 1 if exc.lineno else None
        raise InvalidFragmentError(
            f"The replacement code is not valid Python (line {line}: {exc.msg}). "
            "Replace whole statements, for example a complete function or "
            "if-block, not a partial line.",
            {"line": line, "reason": exc.msg},
        ) from exc


def replace_line_range(source: str, edit: ReplaceLineRange) -> EditOutcome:
    validate_block(edit.new_text)

    lines = source.split("\n")
    start_index = edit.start_line - 1
    end_index = edit.end_line - 1
    if start_index < 0 or start_index >= len(lines):
        raise LineRangeError(
            f"start_line {edit.start_line} is out of file bounds (1-{len(lines)}). "
            "Re-read the file to get current line numbers.",
            {"start_line": edit.start_line, "total_lines": len(lines)},
        )
    if end_index < start_index or end_index >= len(lines):
        raise LineRangeError(
            f"end_line {edit.end_line} is invalid or out of file bounds "
            f"(1-{len(lines)}).",
            {"end_line": edit.end_line, "total_lines": len(lines)},
        )

    block = edit.new_text.removesuffix("\n")
    updated = "\n".join(lines[:start_index] + [block] + lines[end_index + 1 :])
    return (
        updated,
        f"Replaced code block from line {edit.start_line} to {edit.end_line}",
    )
