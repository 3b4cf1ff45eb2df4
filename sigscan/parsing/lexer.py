"""Tokenizer that hides comments and literal contents from declaration matching.

Comments are dropped from the token stream (documentation comments are kept
aside and attached to the next token), string and hex literals collapse into a
single opaque ``STRING`` token, and every token carries the brace and paren
depth at which it appears. Opening and closing delimiters of a pair share the
same depth value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

IDENT = "ident"
NUMBER = "number"
STRING = "string"
PUNCT = "punct"

_IDENT_START = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_$")
_IDENT_PART = _IDENT_START | frozenset("0123456789")
_NUMBER_PART = _IDENT_PART | frozenset(".")
_MULTI_CHAR_PUNCT = ("=>", "==", "!=", "<=", ">=", "&&", "||", "++", "--", "**", "<<", ">>", "->", ":=")


class UnparseableSourceError(ValueError):
    """Raised when a comment or string literal is never terminated."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"{message} (line {line})")
        self.line = line


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    start: int
    end: int
    line: int
    depth: int
    paren_depth: int
    doc: Optional[str] = None

    def is_punct(self, value: str) -> bool:
        return self.kind == PUNCT and self.value == value

    def is_word(self, value: str) -> bool:
        return self.kind == IDENT and self.value == value


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens, raising ``UnparseableSourceError`` on runaway comments or strings."""
    return _Lexer(text).run()


class _Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.depth = 0
        self.paren_depth = 0
        self.tokens: List[Token] = []
        self._pending_docs: List[str] = []
        self._doc_run_line: Optional[int] = None

    def run(self) -> List[Token]:
        text = self.text
        length = len(text)
        while self.pos < length:
            char = text[self.pos]
            if char == "\n":
                self.line += 1
                self.pos += 1
            elif char.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                self._line_comment()
            elif text.startswith("/*", self.pos):
                self._block_comment()
            elif char in "\"'":
                self._string(char)
            elif char in _IDENT_START:
                self._identifier()
            elif char.isdigit():
                self._number()
            else:
                self._punct(char)
        return self.tokens

    # ------------------------------------------------------------------
    # Comments

    def _line_comment(self) -> None:
        end = self.text.find("\n", self.pos)
        if end == -1:
            end = len(self.text)
        body = self.text[self.pos : end]
        if body.startswith("///") and not body.startswith("////"):
            # consecutive /// lines form one doc comment
            if self._doc_run_line is not None and self._doc_run_line == self.line - 1 and self._pending_docs:
                self._pending_docs[-1] = f"{self._pending_docs[-1]}\n{body[3:].strip()}"
            else:
                self._pending_docs = [body[3:].strip()]
            self._doc_run_line = self.line
        self.pos = end

    def _block_comment(self) -> None:
        start_line = self.line
        end = self.text.find("*/", self.pos + 2)
        if end == -1:
            raise UnparseableSourceError("Unterminated block comment", start_line)
        body = self.text[self.pos : end + 2]
        self.line += body.count("\n")
        if body.startswith("/**") and not body.startswith("/***") and body != "/**/":
            inner = body[3:-2]
            lines = [_strip_leading_star(line) for line in inner.splitlines()]
            self._pending_docs = ["\n".join(lines).strip()]
            self._doc_run_line = None
        self.pos = end + 2

    # ------------------------------------------------------------------
    # Literals and words

    def _string(self, quote: str) -> None:
        start = self.pos
        index = self.pos + 1
        text = self.text
        while index < len(text):
            char = text[index]
            if char == "\\":
                index += 2
                continue
            if char == "\n":
                break
            if char == quote:
                self._emit(STRING, text[start + 1 : index], start, index + 1)
                # escaped line continuations
                self.line += text.count("\n", start, index)
                self.pos = index + 1
                return
            index += 1
        raise UnparseableSourceError("Unterminated string literal", self.line)

    def _identifier(self) -> None:
        start = self.pos
        index = start + 1
        while index < len(self.text) and self.text[index] in _IDENT_PART:
            index += 1
        self._emit(IDENT, self.text[start:index], start, index)
        self.pos = index

    def _number(self) -> None:
        start = self.pos
        index = start + 1
        while index < len(self.text) and self.text[index] in _NUMBER_PART:
            index += 1
        self._emit(NUMBER, self.text[start:index], start, index)
        self.pos = index

    def _punct(self, char: str) -> None:
        for candidate in _MULTI_CHAR_PUNCT:
            if self.text.startswith(candidate, self.pos):
                self._emit(PUNCT, candidate, self.pos, self.pos + len(candidate))
                self.pos += len(candidate)
                return

        if char == "{":
            self._emit(PUNCT, char, self.pos, self.pos + 1)
            self.depth += 1
        elif char == "}":
            self.depth = max(self.depth - 1, 0)
            self._emit(PUNCT, char, self.pos, self.pos + 1)
        elif char == "(":
            self._emit(PUNCT, char, self.pos, self.pos + 1)
            self.paren_depth += 1
        elif char == ")":
            self.paren_depth = max(self.paren_depth - 1, 0)
            self._emit(PUNCT, char, self.pos, self.pos + 1)
        else:
            self._emit(PUNCT, char, self.pos, self.pos + 1)
        self.pos += 1

    def _emit(self, kind: str, value: str, start: int, end: int) -> None:
        doc = self._pending_docs[-1] if self._pending_docs else None
        self._pending_docs = []
        self._doc_run_line = None
        self.tokens.append(
            Token(
                kind=kind,
                value=value,
                start=start,
                end=end,
                line=self.line,
                depth=self.depth,
                paren_depth=self.paren_depth,
                doc=doc,
            )
        )


def _strip_leading_star(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("*"):
        stripped = stripped[1:]
        if stripped.startswith(" "):
            stripped = stripped[1:]
    return stripped.rstrip()


__all__ = ["IDENT", "NUMBER", "PUNCT", "STRING", "Token", "UnparseableSourceError", "tokenize"]
