from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

from .errors import SourceParseError, diag

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}
RAW_STRING_RE = re.compile(r'b?r(#*)"')


@dataclass(frozen=True)
class Syntax:
    name: str
    nested_comments: bool = False
    raw_strings: bool = False
    char_literals: bool = False
    single_quote_strings: bool = False
    attributes: bool = False
    item_keywords: tuple[str, ...] = ()
    container_keywords: frozenset[str] = frozenset()
    statement_keywords: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class Block:
    items: tuple["Item", ...] = ()
    trailer: str = ""

    def render(self) -> str:
        return "".join(item.render() for item in self.items) + self.trailer

    def index_of(self, item: "Item") -> int:
        for idx, candidate in enumerate(self.items):
            if candidate is item:
                return idx
        raise ValueError("item not in block")


@dataclass(frozen=True)
class Item:
    # offsets in attr_spans, decl_offset and body are relative to head

    kind: str | None
    name: str | None
    leading: str = ""
    head: str = ""
    block: Block | None = None
    tail: str = ""
    attrs: tuple[str, ...] = ()
    attr_spans: tuple[tuple[int, int], ...] = ()
    decl_offset: int = 0
    words: tuple[str, ...] = ()
    body: tuple[int, int] | None = None
    body_words: tuple[str, ...] = ()

    def render(self) -> str:
        inner = self.block.render() if self.block is not None else ""
        return self.leading + self.head + inner + self.tail

    @property
    def indent(self) -> str:
        if "\n" not in self.leading:
            return ""
        last = self.leading.rsplit("\n", 1)[1]
        return last if last.strip() == "" else ""


@dataclass(frozen=True)
class SourceDocument:
    syntax: Syntax
    root: Block = field(default_factory=Block)

    def render(self) -> str:
        return self.root.render()


def _line_col(text: str, offset: int) -> str:
    line = text.count("\n", 0, offset) + 1
    col = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return f"{line}:{col}"


def _fail(text: str, offset: int, code: str, message: str, expected: str, got: str) -> SourceParseError:
    return SourceParseError(diag(code, message, expected, got, _line_col(text, offset)))


def _scan_block_comment(text: str, start: int, nested: bool) -> int:
    depth = 0
    i = start
    while i < len(text):
        if text.startswith("/*", i):
            depth = depth + 1 if nested or depth == 0 else depth
            i += 2
            continue
        if text.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
            continue
        i += 1
    raise _fail(text, start, "E_SOURCE_COMMENT_UNTERMINATED", "block comment is not closed", "*/", "end of file")


def _scan_string(text: str, start: int, quote: str) -> int:
    i = start + 1
    escaped = False
    while i < len(text):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == quote:
            return i + 1
        i += 1
    raise _fail(text, start, "E_SOURCE_STRING_UNTERMINATED", "string literal is not closed", quote, "end of file")


def _scan_char(text: str, start: int) -> int | None:
    if start + 1 >= len(text):
        return None
    if text[start + 1] == "\\":
        end = text.find("'", start + 3)
        if end == -1 or "\n" in text[start:end]:
            raise _fail(text, start, "E_SOURCE_CHAR_UNTERMINATED", "char literal is not closed", "'", "end of line")
        return end + 1
    if start + 2 < len(text) and text[start + 2] == "'" and text[start + 1] != "\n":
        return start + 3
    return None


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def tokenize(text: str, syntax: Syntax) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            tokens.append(Token("space", text[i:j], i, j))
            i = j
            continue
        if text.startswith("//", i):
            j = text.find("\n", i)
            j = n if j == -1 else j
            tokens.append(Token("comment", text[i:j], i, j))
            i = j
            continue
        if text.startswith("/*", i):
            j = _scan_block_comment(text, i, syntax.nested_comments)
            tokens.append(Token("comment", text[i:j], i, j))
            i = j
            continue
        if syntax.raw_strings and ch in "rb":
            match = RAW_STRING_RE.match(text, i)
            if match:
                closing = '"' + match.group(1)
                end = text.find(closing, match.end())
                if end == -1:
                    raise _fail(text, i, "E_SOURCE_STRING_UNTERMINATED", "raw string is not closed", closing, "end of file")
                j = end + len(closing)
                tokens.append(Token("string", text[i:j], i, j))
                i = j
                continue
        if ch == '"' or (ch == "'" and syntax.single_quote_strings):
            j = _scan_string(text, i, ch)
            tokens.append(Token("string", text[i:j], i, j))
            i = j
            continue
        if ch == "'" and syntax.char_literals:
            j = _scan_char(text, i)
            if j is not None:
                tokens.append(Token("string", text[i:j], i, j))
                i = j
                continue
        if _is_word_char(ch):
            j = i + 1
            while j < n and _is_word_char(text[j]):
                j += 1
            tokens.append(Token("word", text[i:j], i, j))
            i = j
            continue
        tokens.append(Token("punct", ch, i, i + 1))
        i += 1
    return tokens


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


class _Parser:
    def __init__(self, text: str, syntax: Syntax) -> None:
        self.text = text
        self.syntax = syntax
        self.tokens = tokenize(text, syntax)
        self.pos = 0

    def _offset(self) -> int:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos].start
        return len(self.text)

    def _skip_trivia(self) -> None:
        while self.pos < len(self.tokens) and self.tokens[self.pos].kind in ("space", "comment"):
            self.pos += 1

    def _at(self, text: str) -> bool:
        if self.pos >= len(self.tokens):
            return False
        tok = self.tokens[self.pos]
        return tok.kind == "punct" and tok.text == text

    def _skip_balanced(self) -> list[str]:
        words: list[str] = []
        stack: list[str] = []
        start = self.tokens[self.pos].start
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            self.pos += 1
            if tok.kind == "word":
                words.append(tok.text)
                continue
            if tok.kind != "punct":
                continue
            if tok.text in OPENERS:
                stack.append(OPENERS[tok.text])
            elif tok.text in CLOSERS:
                if not stack or stack[-1] != tok.text:
                    raise _fail(
                        self.text,
                        tok.start,
                        "E_SOURCE_UNBALANCED",
                        "closing bracket does not match",
                        stack[-1] if stack else "no closer",
                        tok.text,
                    )
                stack.pop()
                if not stack:
                    return words
            else:
                words.append(tok.text)
        raise _fail(self.text, start, "E_SOURCE_UNBALANCED", "bracket is never closed", "matching closer", "end of file")

    def _absorb_semicolon(self, end: int) -> int:
        ahead = self.pos
        while ahead < len(self.tokens) and self.tokens[ahead].kind == "space" and "\n" not in self.tokens[ahead].text:
            ahead += 1
        if ahead < len(self.tokens):
            tok = self.tokens[ahead]
            if tok.kind == "punct" and tok.text == ";":
                self.pos = ahead + 1
                return tok.end
        return end

    def _classify(self, words: list[str]) -> tuple[str | None, str | None]:
        for keyword in self.syntax.item_keywords:
            if keyword in words:
                idx = words.index(keyword)
                name = words[idx + 1] if idx + 1 < len(words) else None
                return keyword, name
        return None, None

    def parse_block(self, nested: bool) -> Block:
        items: list[Item] = []
        while True:
            lead_start = self._offset()
            self._skip_trivia()
            start = self._offset()
            if self.pos >= len(self.tokens):
                if nested:
                    raise _fail(self.text, start, "E_SOURCE_UNBALANCED", "block is never closed", "}", "end of file")
                return Block(items=tuple(items), trailer=self.text[lead_start:start])
            if self._at("}"):
                if not nested:
                    raise _fail(self.text, start, "E_SOURCE_UNBALANCED", "unexpected closing brace", "declaration", "}")
                return Block(items=tuple(items), trailer=self.text[lead_start:start])
            if self._at(")") or self._at("]"):
                tok = self.tokens[self.pos]
                raise _fail(self.text, start, "E_SOURCE_UNBALANCED", "unexpected closing bracket", "declaration", tok.text)
            items.append(self._parse_item(self.text[lead_start:start], start))

    def _parse_attributes(self, start: int) -> tuple[list[str], list[tuple[int, int]], bool]:
        attrs: list[str] = []
        spans: list[tuple[int, int]] = []
        while self.syntax.attributes and self._at("#"):
            attr_start = self.tokens[self.pos].start
            self.pos += 1
            inner = self._at("!")
            if inner:
                self.pos += 1
            if not self._at("["):
                raise _fail(self.text, attr_start, "E_SOURCE_ATTRIBUTE_INVALID", "attribute must be bracketed", "#[...]", "#")
            self._skip_balanced()
            attr_end = self.tokens[self.pos - 1].end
            attrs.append(_squash(self.text[attr_start:attr_end]))
            spans.append((attr_start - start, attr_end - start))
            if inner:
                return attrs, spans, True
            self._skip_trivia()
        return attrs, spans, False

    def _parse_item(self, leading: str, start: int) -> Item:
        attrs, attr_spans, inner_attr = self._parse_attributes(start)
        if inner_attr:
            end = self.tokens[self.pos - 1].end
            return Item(
                kind="attribute",
                name=None,
                leading=leading,
                head=self.text[start:end],
                attrs=tuple(attrs),
                attr_spans=tuple(attr_spans),
            )
        decl_offset = self._offset() - start
        words: list[str] = []
        while True:
            if self.pos >= len(self.tokens):
                raise _fail(self.text, start, "E_SOURCE_DECL_UNTERMINATED", "declaration is not terminated", "; or {...}", "end of file")
            tok = self.tokens[self.pos]
            if tok.kind in ("space", "comment", "string"):
                self.pos += 1
                continue
            if tok.kind == "word":
                words.append(tok.text)
                self.pos += 1
                continue
            if tok.text == ";":
                self.pos += 1
                kind, name = self._classify(words)
                return Item(
                    kind=kind,
                    name=name,
                    leading=leading,
                    head=self.text[start:tok.end],
                    attrs=tuple(attrs),
                    attr_spans=tuple(attr_spans),
                    decl_offset=decl_offset,
                    words=tuple(words),
                )
            if tok.text == "{" and self._classify(words)[0] not in self.syntax.statement_keywords:
                return self._finish_braced(leading, start, attrs, attr_spans, decl_offset, words)
            if tok.text in OPENERS:
                self._skip_balanced()
                continue
            if tok.text in CLOSERS:
                raise _fail(self.text, tok.start, "E_SOURCE_UNBALANCED", "unexpected closing bracket", "declaration", tok.text)
            self.pos += 1

    def _finish_braced(
        self,
        leading: str,
        start: int,
        attrs: list[str],
        attr_spans: list[tuple[int, int]],
        decl_offset: int,
        words: list[str],
    ) -> Item:
        kind, name = self._classify(words)
        brace = self.tokens[self.pos]
        if kind in self.syntax.container_keywords:
            self.pos += 1
            block = self.parse_block(nested=True)
            close = self.tokens[self.pos]
            self.pos += 1
            end = self._absorb_semicolon(close.end)
            return Item(
                kind=kind,
                name=name,
                leading=leading,
                head=self.text[start:brace.end],
                block=block,
                tail=self.text[close.start:end],
                attrs=tuple(attrs),
                attr_spans=tuple(attr_spans),
                decl_offset=decl_offset,
                words=tuple(words),
            )
        body_words = self._skip_balanced()
        body_end = self.tokens[self.pos - 1].end
        end = self._absorb_semicolon(body_end)
        return Item(
            kind=kind,
            name=name,
            leading=leading,
            head=self.text[start:end],
            attrs=tuple(attrs),
            attr_spans=tuple(attr_spans),
            decl_offset=decl_offset,
            words=tuple(words),
            body=(brace.start - start, body_end - start),
            body_words=tuple(body_words),
        )


def parse_source(text: str, syntax: Syntax) -> SourceDocument:
    """parse_source(text, syntax).render() == text for any accepted input."""
    parser = _Parser(text, syntax)
    return SourceDocument(syntax=syntax, root=parser.parse_block(nested=False))


def with_items(block: Block, items: list[Item] | tuple[Item, ...]) -> Block:
    return replace(block, items=tuple(items))


def replace_item(block: Block, old: Item, new: Item) -> Block:
    idx = block.index_of(old)
    items = list(block.items)
    items[idx] = new
    return with_items(block, items)
