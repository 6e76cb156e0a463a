"""
Tokenizer - Splits SQL text into word, string and symbol tokens.
"""

from dataclasses import dataclass
from enum import IntEnum

from minirel.models.exceptions import SQLSyntaxError

TWO_CHAR_SYMBOLS = ("!=", ">=", "<=", "<>")
ONE_CHAR_SYMBOLS = ("(", ")", ",", "*", "=", "<", ">", ";")


class TokenKind(IntEnum):
    WORD = 0  # identifiers, keywords, numbers, TRUE/FALSE/NULL
    STRING = 1  # quoted literal
    SYMBOL = 2  # operators and punctuation
    EOF = 3


@dataclass(frozen=True)
class Token:
    """
    A lexical token.

    Attributes:
        kind: Token category.
        text: Source text of the token, quotes included for strings.
        position: Character offset where the token starts.
        value: Unescaped content of a string literal, else the text.
    """

    kind: TokenKind
    text: str
    position: int
    value: str = ""

    def upper(self) -> str:
        return self.text.upper() if self.kind == TokenKind.WORD else self.text

    def describe(self) -> str:
        return "end of input" if self.kind == TokenKind.EOF else f"'{self.text}'"


def _is_word_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "_.")


class Tokenizer:
    """Hand-written single-pass tokenizer."""

    def __init__(self, sql: str) -> None:
        self._sql = sql
        self._pos = 0

    def tokenize(self) -> list[Token]:
        """
        Tokenize the whole input.

        Returns:
            Tokens in source order, terminated by an EOF token.

        Raises:
            SQLSyntaxError: On an unterminated string or a stray character.
        """
        tokens = []
        while True:
            token = self._next_token()
            tokens.append(token)
            if token.kind == TokenKind.EOF:
                return tokens

    def _next_token(self) -> Token:
        sql = self._sql
        while self._pos < len(sql) and sql[self._pos].isspace():
            self._pos += 1

        start = self._pos
        if start >= len(sql):
            return Token(TokenKind.EOF, "", start)

        ch = sql[start]
        if ch in ("'", '"'):
            return self._read_string(ch)

        two = sql[start : start + 2]
        if two in TWO_CHAR_SYMBOLS:
            self._pos += 2
            return Token(TokenKind.SYMBOL, two, start, two)

        if ch in ONE_CHAR_SYMBOLS:
            self._pos += 1
            return Token(TokenKind.SYMBOL, ch, start, ch)

        # Signed numeric literal
        if ch in "+-" and start + 1 < len(sql) and sql[start + 1].isdigit():
            self._pos += 1

        if _is_word_char(sql[self._pos]):
            while self._pos < len(sql) and _is_word_char(sql[self._pos]):
                self._pos += 1
            text = sql[start : self._pos]
            return Token(TokenKind.WORD, text, start, text)

        raise SQLSyntaxError(f"Unexpected character '{ch}'", start)

    def _read_string(self, quote: str) -> Token:
        sql = self._sql
        start = self._pos
        self._pos += 1
        chars = []

        while self._pos < len(sql):
            ch = sql[self._pos]
            if ch == "\\" and self._pos + 1 < len(sql):
                chars.append(sql[self._pos + 1])
                self._pos += 2
                continue
            if ch == quote:
                self._pos += 1
                return Token(TokenKind.STRING, sql[start : self._pos], start, "".join(chars))
            chars.append(ch)
            self._pos += 1

        raise SQLSyntaxError("Unterminated string literal", start)
