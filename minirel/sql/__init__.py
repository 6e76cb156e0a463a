"""
SQL front end: tokenizer and recursive-descent parser.
"""

from minirel.sql.parser import parse
from minirel.sql.tokenizer import Token, TokenKind, Tokenizer

__all__ = ["parse", "Token", "TokenKind", "Tokenizer"]
