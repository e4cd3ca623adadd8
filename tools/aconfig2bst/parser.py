"""Parser for Android.bp Blueprint files.

Covers what aconfig modules need:
- Module definitions: aconfig_values { name: "foo", srcs: ["*.textproto"] }
- Variable assignments with = and +=
- Lists, nested maps, strings, bools and integers
- + concatenation of lists and strings
- select(cond("arg"), { "value": ..., default: ... }) and unset, so files
  mixing aconfig modules with configurable properties still parse
- // and /* */ comments
"""

import re
from typing import Iterator, List, Optional
from . import syntax


class ParseError(Exception):
    def __init__(self, message, line=0, col=0, filename="<input>"):
        self.line = line
        self.col = col
        self.filename = filename
        super().__init__(f"{filename}: line {line}, col {col}: {message}")


class Token:
    __slots__ = ("type", "value", "line", "col")

    def __init__(self, type_, value, line=0, col=0):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col

    def __repr__(self):
        return f"Token({self.type}, {self.value!r}, L{self.line})"


TOK_IDENT = "IDENT"
TOK_STRING = "STRING"
TOK_INT = "INT"
TOK_PUNCT = "PUNCT"
TOK_EOF = "EOF"

_TOKEN_RE = re.compile(r"""
    (?P<ws>[ \t\r\n]+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*.*?\*/)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<int>-?[0-9]+)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>\+=|[{}\[\]():,=+@])
""", re.VERBOSE | re.DOTALL)

_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}


def _unquote(literal: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)),
                  literal[1:-1])


def tokenize(text: str, filename: str = "<input>") -> Iterator[Token]:
    """Yield tokens for ``text``, ending with a single EOF token."""
    pos = 0
    line = 1
    line_start = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        col = pos - line_start + 1
        if match is None:
            if text.startswith("/*", pos):
                raise ParseError("Unterminated block comment", line, col, filename)
            if text[pos] == '"':
                raise ParseError("Unterminated string", line, col, filename)
            raise ParseError(f"Unexpected character: {text[pos]!r}", line, col, filename)

        kind = match.lastgroup
        chunk = match.group()
        if kind == "string":
            yield Token(TOK_STRING, _unquote(chunk), line, col)
        elif kind == "int":
            yield Token(TOK_INT, int(chunk), line, col)
        elif kind == "ident":
            yield Token(TOK_IDENT, chunk, line, col)
        elif kind == "punct":
            yield Token(TOK_PUNCT, chunk, line, col)

        newlines = chunk.count("\n")
        if newlines:
            line += newlines
            line_start = pos + chunk.rindex("\n") + 1
        pos = match.end()

    yield Token(TOK_EOF, "", line, pos - line_start + 1)


class Parser:
    """Recursive descent parser producing a syntax.File."""

    def __init__(self, text: str, filename: str = "<input>"):
        self.filename = filename
        self.tokens: List[Token] = list(tokenize(text, filename))
        self.pos = 0

    def _peek(self, offset=0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.type != TOK_EOF:
            self.pos += 1
        return tok

    def _error(self, message, tok: Token):
        return ParseError(message, tok.line, tok.col, self.filename)

    def _is(self, value: str, offset=0) -> bool:
        tok = self._peek(offset)
        return tok.type == TOK_PUNCT and tok.value == value

    def _expect(self, value: str) -> Token:
        tok = self._advance()
        if tok.type != TOK_PUNCT or tok.value != value:
            raise self._error(f"Expected {value!r}, got {tok.type} ({tok.value!r})", tok)
        return tok

    def _expect_type(self, type_: str) -> Token:
        tok = self._advance()
        if tok.type != type_:
            raise self._error(f"Expected {type_}, got {tok.type} ({tok.value!r})", tok)
        return tok

    def _match(self, value: str) -> Optional[Token]:
        if self._is(value):
            return self._advance()
        return None

    def _pos(self, tok: Token) -> syntax.Pos:
        return syntax.Pos(self.filename, tok.line, tok.col)

    def parse(self) -> syntax.File:
        file = syntax.File(name=self.filename)
        while self._peek().type != TOK_EOF:
            file.defs.append(self._parse_definition())
        return file

    def _parse_definition(self):
        tok = self._expect_type(TOK_IDENT)
        if self._is("{"):
            return syntax.Module(type=tok.value, properties=self._parse_map_body(),
                                 pos=self._pos(tok))
        if self._match("="):
            return syntax.Assignment(tok.value, self._parse_expression(),
                                     pos=self._pos(tok))
        if self._match("+="):
            return syntax.Assignment(tok.value, self._parse_expression(),
                                     append=True, pos=self._pos(tok))
        nxt = self._peek()
        raise self._error(
            f"Expected '=', '+=', or '{{' after identifier '{tok.value}', got {nxt.type}",
            nxt,
        )

    def _parse_map_body(self) -> List[syntax.Property]:
        self._expect("{")
        properties = []
        while not self._is("}"):
            name_tok = self._expect_type(TOK_IDENT)
            self._expect(":")
            properties.append(syntax.Property(name_tok.value, self._parse_expression()))
            if not self._match(","):
                break
        self._expect("}")
        return properties

    def _parse_expression(self) -> syntax.Expression:
        expr = self._parse_operand()
        while self._match("+"):
            expr = syntax.ConcatExpr(expr, self._parse_operand())
        return expr

    def _parse_operand(self) -> syntax.Expression:
        tok = self._peek()

        if tok.type == TOK_STRING:
            self._advance()
            return syntax.StringExpr(tok.value)
        if tok.type == TOK_INT:
            self._advance()
            return syntax.IntExpr(tok.value)
        if tok.type == TOK_IDENT:
            if tok.value == "select" and self._is("(", 1):
                return self._parse_select()
            self._advance()
            if tok.value in ("true", "false"):
                return syntax.BoolExpr(tok.value == "true")
            if tok.value == "unset":
                return syntax.UnsetExpr()
            return syntax.VariableRef(tok.value)
        if self._is("{"):
            return syntax.MapExpr(self._parse_map_body())
        if self._match("["):
            values = []
            while not self._is("]"):
                values.append(self._parse_expression())
                if not self._match(","):
                    break
            self._expect("]")
            return syntax.ListExpr(values)

        raise self._error(f"Unexpected token in expression: {tok.type} ({tok.value!r})", tok)

    def _parse_select(self) -> syntax.SelectExpr:
        """Parse select(condition, { pattern: value, ... }).

        The condition is either one call like arch() or a parenthesized
        tuple of calls, in which case every pattern is a tuple as well.
        """
        self._expect_type(TOK_IDENT)  # "select"
        self._expect("(")
        if self._match("("):
            conditions = []
            while not self._is(")"):
                conditions.append(self._parse_condition())
                if not self._match(","):
                    break
            self._expect(")")
        else:
            conditions = [self._parse_condition()]
        self._expect(",")

        self._expect("{")
        cases = []
        while not self._is("}"):
            if self._match("("):
                patterns = []
                while not self._is(")"):
                    patterns.append(self._parse_pattern())
                    if not self._match(","):
                        break
                self._expect(")")
            else:
                patterns = [self._parse_pattern()]
            self._expect(":")
            cases.append((patterns, self._parse_expression()))
            if not self._match(","):
                break
        self._expect("}")
        self._match(",")
        self._expect(")")
        return syntax.SelectExpr(conditions, cases)

    def _parse_condition(self):
        name = self._expect_type(TOK_IDENT).value
        self._expect("(")
        args = []
        while not self._is(")"):
            args.append(self._expect_type(TOK_STRING).value)
            if not self._match(","):
                break
        self._expect(")")
        return name, args

    def _parse_pattern(self) -> str:
        tok = self._advance()
        if tok.type == TOK_STRING:
            return tok.value
        if tok.type == TOK_IDENT:
            # "any @ var" binds the matched value; only the pattern is kept
            if tok.value == "any" and self._match("@"):
                self._expect_type(TOK_IDENT)
            return tok.value
        raise self._error(f"Expected pattern in select case, got {tok.type} ({tok.value!r})", tok)


def parse_file(filepath: str) -> syntax.File:
    """Parse an Android.bp file and return an AST."""
    with open(filepath, "r") as f:
        text = f.read()
    return Parser(text, filename=filepath).parse()


def parse_string(text: str, filename: str = "<string>") -> syntax.File:
    """Parse an Android.bp string and return an AST."""
    return Parser(text, filename=filename).parse()
