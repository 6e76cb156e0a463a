"""
Parser - Recursive-descent SQL parser producing ParsedQuery variants.

Supported statements:
- SELECT cols FROM t [JOIN ...] [WHERE ...] [ORDER BY ...] [LIMIT n]
- INSERT INTO t [(cols)] VALUES (...)[, (...)]
- UPDATE t SET col = v[, ...] [WHERE ...]
- DELETE FROM t [WHERE ...]
- CREATE TABLE t (col type [constraints], ...)
- CREATE [UNIQUE] INDEX name ON t (col)
- DROP TABLE t

WHERE clauses are `col op value` terms chained with AND/OR and evaluated
strictly left to right; there is no grouping or precedence.
"""

import re

from minirel.models.exceptions import SQLSyntaxError, UnknownCommandError
from minirel.models.query import (
    Connector,
    CreateIndexQuery,
    CreateTableQuery,
    DeleteQuery,
    DropTableQuery,
    InsertQuery,
    JoinClause,
    JoinType,
    Operator,
    OrderBy,
    ParsedQuery,
    SelectQuery,
    SortDirection,
    UpdateQuery,
    WhereClause,
)
from minirel.models.schema import ColumnDef, DataType
from minirel.models.value import Value
from minirel.sql.tokenizer import Token, TokenKind, Tokenizer

TYPE_KEYWORDS = {
    "INT": DataType.INT,
    "INTEGER": DataType.INT,
    "FLOAT": DataType.FLOAT,
    "DOUBLE": DataType.FLOAT,
    "REAL": DataType.FLOAT,
    "BOOL": DataType.BOOLEAN,
    "BOOLEAN": DataType.BOOLEAN,
    "STRING": DataType.STRING,
    "TEXT": DataType.STRING,
    "VARCHAR": DataType.STRING,
}

OPERATORS = {
    "=": Operator.EQ,
    "!=": Operator.NE,
    "<>": Operator.NE,
    ">": Operator.GT,
    "<": Operator.LT,
    ">=": Operator.GE,
    "<=": Operator.LE,
    "LIKE": Operator.LIKE,
}

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+)([eE]\d+)?")


def parse(sql: str) -> ParsedQuery:
    """
    Parse one SQL statement.

    Args:
        sql: Statement text, optionally terminated by a semicolon.

    Returns:
        The matching ParsedQuery variant.

    Raises:
        SQLSyntaxError: If the statement is malformed.
        UnknownCommandError: If the leading keyword is not supported.
    """
    return Parser(Tokenizer(sql).tokenize()).parse()


def parse_value(token: Token) -> Value:
    """
    Turn a literal token into a Value.

    Quoted text is a string; TRUE/FALSE/NULL are keywords; numeric text is
    INT or FLOAT; any other bare word is kept as a string.
    """
    if token.kind == TokenKind.STRING:
        return Value.string(token.value)

    keyword = token.text.upper()
    if keyword == "TRUE":
        return Value.boolean(True)
    if keyword == "FALSE":
        return Value.boolean(False)
    if keyword == "NULL":
        return Value.null()
    if _INT_RE.fullmatch(token.text):
        return Value.integer(int(token.text))
    if _FLOAT_RE.fullmatch(token.text):
        return Value.real(float(token.text))
    return Value.string(token.text)


def _split_qualified(name: str) -> tuple[str | None, str]:
    if "." in name:
        table, column = name.rsplit(".", 1)
        return table, column
    return None, name


class Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> ParsedQuery:
        first = self._peek()
        if first.kind == TokenKind.EOF:
            raise SQLSyntaxError("Empty statement", first.position)

        handlers = {
            "SELECT": self._parse_select,
            "INSERT": self._parse_insert,
            "UPDATE": self._parse_update,
            "DELETE": self._parse_delete,
            "CREATE": self._parse_create,
            "DROP": self._parse_drop,
        }
        handler = handlers.get(first.upper()) if first.kind == TokenKind.WORD else None
        if handler is None:
            raise UnknownCommandError(first.text)

        query = handler()
        self._finish()
        return query

    # Token helpers

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _peek_is(self, *texts: str) -> bool:
        token = self._peek()
        return token.kind in (TokenKind.WORD, TokenKind.SYMBOL) and token.upper() in texts

    def _next(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind != TokenKind.EOF:
            self._pos += 1
        return token

    def _expect(self, expected: str) -> Token:
        token = self._next()
        if token.kind not in (TokenKind.WORD, TokenKind.SYMBOL) or token.upper() != expected:
            raise SQLSyntaxError(
                f"Expected '{expected}' but got {token.describe()}", token.position
            )
        return token

    def _identifier(self, what: str = "identifier") -> str:
        token = self._next()
        if token.kind != TokenKind.WORD:
            raise SQLSyntaxError(f"Expected {what} but got {token.describe()}", token.position)
        return token.text

    def _literal(self) -> Value:
        token = self._next()
        if token.kind not in (TokenKind.WORD, TokenKind.STRING):
            raise SQLSyntaxError(f"Expected value but got {token.describe()}", token.position)
        return parse_value(token)

    def _at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF or self._peek_is(";")

    def _finish(self) -> None:
        if self._peek_is(";"):
            self._next()
        token = self._peek()
        if token.kind != TokenKind.EOF:
            raise SQLSyntaxError(f"Unexpected token {token.describe()}", token.position)

    # Statements

    def _parse_select(self) -> SelectQuery:
        self._expect("SELECT")

        columns = None
        if self._peek_is("*"):
            self._next()
        else:
            columns = [self._identifier("column name")]
            while self._peek_is(","):
                self._next()
                columns.append(self._identifier("column name"))

        self._expect("FROM")
        query = SelectQuery(table=self._identifier("table name"), columns=columns)

        while not self._at_end():
            if self._peek_is("INNER", "LEFT", "RIGHT", "JOIN"):
                query.joins.append(self._parse_join())
            elif self._peek_is("WHERE"):
                query.where = self._parse_where()
            elif self._peek_is("ORDER"):
                query.order_by = self._parse_order_by()
            elif self._peek_is("LIMIT"):
                query.limit = self._parse_limit()
            else:
                break

        return query

    def _parse_join(self) -> JoinClause:
        join_type = JoinType.INNER
        if self._peek_is("INNER", "LEFT", "RIGHT"):
            join_type = JoinType(self._next().upper())

        self._expect("JOIN")
        table = self._identifier("table name")
        self._expect("ON")
        left = self._identifier("column name")
        self._expect("=")
        right = self._identifier("column name")

        left_table, left_column = _split_qualified(left)
        right_table, right_column = _split_qualified(right)

        # Keep the joined table's column on the right-hand side
        if left_table == table and right_table != table:
            left_table, right_table = right_table, left_table
            left_column, right_column = right_column, left_column

        return JoinClause(
            type=join_type,
            table=table,
            left_column=left_column,
            right_column=right_column,
            left_table=left_table,
            right_table=right_table,
        )

    def _parse_where(self) -> list[WhereClause]:
        self._expect("WHERE")
        clauses = []

        while True:
            column = self._identifier("column name")

            token = self._next()
            operator = OPERATORS.get(token.upper()) if token.kind != TokenKind.STRING else None
            if operator is None:
                raise SQLSyntaxError(
                    f"Expected comparison operator but got {token.describe()}", token.position
                )

            clauses.append(WhereClause(column=column, operator=operator, value=self._literal()))

            if not self._peek_is("AND", "OR"):
                return clauses
            clauses[-1].connector = Connector(self._next().upper())

    def _parse_order_by(self) -> list[OrderBy]:
        self._expect("ORDER")
        self._expect("BY")
        order_by = []

        while True:
            column = self._identifier("column name")
            direction = SortDirection.ASC
            if self._peek_is("ASC", "DESC"):
                direction = SortDirection(self._next().upper())
            order_by.append(OrderBy(column=column, direction=direction))

            if not self._peek_is(","):
                return order_by
            self._next()

    def _parse_limit(self) -> int:
        self._expect("LIMIT")
        token = self._next()
        if token.kind != TokenKind.WORD or not token.text.isdigit():
            raise SQLSyntaxError(
                f"Expected non-negative integer after LIMIT but got {token.describe()}",
                token.position,
            )
        return int(token.text)

    def _parse_insert(self) -> InsertQuery:
        self._expect("INSERT")
        self._expect("INTO")
        table = self._identifier("table name")

        columns = []
        if self._peek_is("("):
            self._next()
            columns.append(self._identifier("column name"))
            while self._peek_is(","):
                self._next()
                columns.append(self._identifier("column name"))
            self._expect(")")

        self._expect("VALUES")
        values = [self._parse_tuple()]
        while self._peek_is(","):
            self._next()
            values.append(self._parse_tuple())

        return InsertQuery(table=table, columns=columns, values=values)

    def _parse_tuple(self) -> list[Value]:
        self._expect("(")
        row = [self._literal()]
        while self._peek_is(","):
            self._next()
            row.append(self._literal())
        self._expect(")")
        return row

    def _parse_update(self) -> UpdateQuery:
        self._expect("UPDATE")
        query = UpdateQuery(table=self._identifier("table name"), assignments={})
        self._expect("SET")

        while True:
            column = self._identifier("column name")
            self._expect("=")
            query.assignments[column] = self._literal()
            if not self._peek_is(","):
                break
            self._next()

        if self._peek_is("WHERE"):
            query.where = self._parse_where()
        return query

    def _parse_delete(self) -> DeleteQuery:
        self._expect("DELETE")
        self._expect("FROM")
        query = DeleteQuery(table=self._identifier("table name"))
        if self._peek_is("WHERE"):
            query.where = self._parse_where()
        return query

    def _parse_create(self) -> CreateTableQuery | CreateIndexQuery:
        self._expect("CREATE")
        if self._peek_is("TABLE"):
            return self._parse_create_table()
        if self._peek_is("INDEX", "UNIQUE"):
            return self._parse_create_index()

        token = self._peek()
        raise SQLSyntaxError(
            f"Expected TABLE or INDEX after CREATE but got {token.describe()}", token.position
        )

    def _parse_create_table(self) -> CreateTableQuery:
        self._expect("TABLE")
        table = self._identifier("table name")
        self._expect("(")

        columns = [self._parse_column_def()]
        while self._peek_is(","):
            self._next()
            columns.append(self._parse_column_def())
        self._expect(")")

        return CreateTableQuery(table=table, columns=columns)

    def _parse_column_def(self) -> ColumnDef:
        name = self._identifier("column name")
        type_name = self._identifier("column type").upper()
        # Unrecognized type names fall back to string columns
        data_type = TYPE_KEYWORDS.get(type_name, DataType.STRING)

        if type_name == "VARCHAR" and self._peek_is("("):
            self._next()
            self._identifier("length")
            self._expect(")")

        flags = {
            "primary_key": False,
            "unique": False,
            "not_null": False,
            "auto_increment": False,
        }
        while not self._at_end() and not self._peek_is(",", ")"):
            token = self._next()
            keyword = token.upper()
            if keyword == "PRIMARY":
                self._expect("KEY")
                flags["primary_key"] = True
            elif keyword == "UNIQUE":
                flags["unique"] = True
            elif keyword == "NOT":
                self._expect("NULL")
                flags["not_null"] = True
            elif keyword in ("AUTO_INCREMENT", "AUTOINCREMENT"):
                flags["auto_increment"] = True
            else:
                raise SQLSyntaxError(
                    f"Unknown column constraint {token.describe()}", token.position
                )

        return ColumnDef(name=name, type=data_type, **flags)

    def _parse_create_index(self) -> CreateIndexQuery:
        unique = False
        if self._peek_is("UNIQUE"):
            self._next()
            unique = True

        self._expect("INDEX")
        name = self._identifier("index name")
        self._expect("ON")
        table = self._identifier("table name")
        self._expect("(")
        column = self._identifier("column name")
        self._expect(")")

        return CreateIndexQuery(name=name, table=table, column=column, unique=unique)

    def _parse_drop(self) -> DropTableQuery:
        self._expect("DROP")
        self._expect("TABLE")
        return DropTableQuery(table=self._identifier("table name"))
