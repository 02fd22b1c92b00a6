"""
Recursive-descent parser for Oro.

Grammar (ascending precedence for expressions):

    program     -> declaration* EOF
    declaration -> classDecl | funDecl | defDecl | statement
    classDecl   -> "class" IDENT ( "extends" IDENT )? "{" ( "fun"? function )* "}"
    funDecl     -> "fun" function
    defDecl     -> "def" IDENT ( "(" params? ")" block | ( "=" expression )? ";" )
    statement   -> exprStmt | forStmt | ifStmt | printStmt | returnStmt | whileStmt | block
    ifStmt      -> "if" expression branch ( "else" statement )?
    whileStmt   -> "while" expression branch
    branch      -> "then" statement | block
    expression  -> assignment
    assignment  -> ( call "." )? IDENT "=" assignment | call "[" expression "]" "=" assignment | or
    or          -> and ( "or" and )*
    and         -> equality ( "and" equality )*
    equality    -> comparison ( ( "!=" | "==" ) comparison )*
    comparison  -> term ( ( ">" | ">=" | "<" | "<=" ) term )*
    term        -> factor ( ( "-" | "+" ) factor )*
    factor      -> unary ( ( "/" | "*" ) unary )*
    unary       -> ( "!" | "-" ) unary | call
    call        -> primary ( "(" arguments? ")" | "." IDENT | "[" expression "]" )*
    primary     -> literal | FSTRING | IDENT | "self" | "super" "." IDENT
                 | "(" expression ")" | "[" ( expression ( "," expression )* )? "]"

Syntax errors are reported through the `Reporter`; the parser then skips
to the next statement boundary and keeps going, so one call collects every
diagnostic it can.
"""
from typing import List, Optional

from oro.oro_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call,
    Get, Set, Self, Super, ArrayLiteral, Index, IndexAssign, InterpolatedString,
    ExpressionStmt, PrintStmt, VarDecl, Block, IfStmt, WhileStmt, FunctionDecl,
    ReturnStmt, ClassDecl,
)
from oro.oro_errors import Reporter
from oro.oro_lexer import Lexer
from oro.oro_tokens import Token, TokenType as T

MAX_ARGUMENTS = 255

# Tokens that usually begin a statement; recovery stops in front of them.
STATEMENT_KEYWORDS = {T.CLASS, T.FUN, T.DEF, T.FOR, T.IF, T.WHILE, T.PRINT, T.RETURN}


class ParseError(Exception):
    """Internal signal used to unwind to the nearest recovery point."""
    pass


class Parser:
    def __init__(self, tokens: List[Token], reporter: Optional[Reporter] = None):
        self.tokens = tokens
        self.reporter = reporter or Reporter()
        self.current = 0

    def parse(self) -> List[Stmt]:
        """Parse the whole token stream; statements that failed to parse are dropped."""
        statements = []
        while not self._is_at_end():
            stmt = self._declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    # =================================================================
    # Declarations
    # =================================================================

    def _declaration(self) -> Optional[Stmt]:
        try:
            if self._match(T.CLASS):
                return self._class_declaration()
            if self._match(T.FUN):
                return self._function("function")
            if self._match(T.DEF):
                return self._def_declaration()
            return self._statement()
        except ParseError:
            self._synchronize()
            return None

    def _class_declaration(self) -> ClassDecl:
        name = self._consume(T.IDENTIFIER, "Expect class name.")

        superclass = None
        if self._match(T.EXTENDS):
            self._consume(T.IDENTIFIER, "Expect superclass name.")
            superclass = Variable(self._previous())

        self._consume(T.LEFT_BRACE, "Expect '{' before class body.")
        methods = []
        while not self._check(T.RIGHT_BRACE) and not self._is_at_end():
            self._match(T.FUN)
            methods.append(self._function("method"))
        self._consume(T.RIGHT_BRACE, "Expect '}' after class body.")
        return ClassDecl(name, superclass, methods)

    def _def_declaration(self) -> Stmt:
        name = self._consume(T.IDENTIFIER, "Expect variable name.")
        # `def name(params) { ... }` declares a function.
        if self._check(T.LEFT_PAREN):
            return self._function_rest(name, "function")

        initializer = None
        if self._match(T.EQUAL):
            initializer = self._expression()
        self._consume(T.SEMICOLON, "Expect ';' after variable declaration.")
        return VarDecl(name, initializer)

    def _function(self, kind: str) -> FunctionDecl:
        name = self._consume(T.IDENTIFIER, f"Expect {kind} name.")
        return self._function_rest(name, kind)

    def _function_rest(self, name: Token, kind: str) -> FunctionDecl:
        self._consume(T.LEFT_PAREN, f"Expect '(' after {kind} name.")
        params: List[Token] = []
        if not self._check(T.RIGHT_PAREN):
            while True:
                if len(params) >= MAX_ARGUMENTS:
                    self._error(self._peek(), f"Can't have more than {MAX_ARGUMENTS} parameters.")
                params.append(self._consume(T.IDENTIFIER, "Expect parameter name."))
                if not self._match(T.COMMA):
                    break
        self._consume(T.RIGHT_PAREN, "Expect ')' after parameters.")
        self._consume(T.LEFT_BRACE, f"Expect '{{' before {kind} body.")
        return FunctionDecl(name, params, self._block())

    # =================================================================
    # Statements
    # =================================================================

    def _statement(self) -> Stmt:
        if self._match(T.FOR):
            return self._for_statement()
        if self._match(T.IF):
            return self._if_statement()
        if self._match(T.PRINT):
            return self._print_statement()
        if self._match(T.RETURN):
            return self._return_statement()
        if self._match(T.WHILE):
            return self._while_statement()
        if self._match(T.LEFT_BRACE):
            return Block(self._block())
        return self._expression_statement()

    def _for_statement(self) -> Stmt:
        """Desugar `for (init; cond; step) body` into a block holding a while loop."""
        self._consume(T.LEFT_PAREN, "Expect '(' after 'for'.")
        if self._match(T.SEMICOLON):
            initializer = None
        elif self._match(T.DEF):
            initializer = self._def_declaration()
        else:
            initializer = self._expression_statement()

        condition = None
        if not self._check(T.SEMICOLON):
            condition = self._expression()
        self._consume(T.SEMICOLON, "Expect ';' after loop condition.")

        increment = None
        if not self._check(T.RIGHT_PAREN):
            increment = self._expression()
        self._consume(T.RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self._statement()
        if increment is not None:
            body = Block([body, ExpressionStmt(increment)])
        if condition is None:
            condition = Literal(True)
        body = WhileStmt(condition, body)
        if initializer is not None:
            body = Block([initializer, body])
        return body

    def _if_statement(self) -> IfStmt:
        condition = self._expression()
        then_branch = self._branch("if condition")
        else_branch = None
        if self._match(T.ELSE):
            else_branch = self._statement()
        return IfStmt(condition, then_branch, else_branch)

    def _while_statement(self) -> WhileStmt:
        condition = self._expression()
        return WhileStmt(condition, self._branch("while condition"))

    def _branch(self, context: str) -> Stmt:
        if self._match(T.THEN):
            return self._statement()
        if self._match(T.LEFT_BRACE):
            return Block(self._block())
        raise self._error(self._peek(), f"Expect 'then' or '{{' after {context}.")

    def _print_statement(self) -> PrintStmt:
        keyword = self._previous()
        value = self._expression()
        self._consume(T.SEMICOLON, "Expect ';' after value.")
        return PrintStmt(keyword, value)

    def _return_statement(self) -> ReturnStmt:
        keyword = self._previous()
        value = None
        if not self._check(T.SEMICOLON):
            value = self._expression()
        self._consume(T.SEMICOLON, "Expect ';' after return value.")
        return ReturnStmt(keyword, value)

    def _block(self) -> List[Stmt]:
        statements = []
        while not self._check(T.RIGHT_BRACE) and not self._is_at_end():
            stmt = self._declaration()
            if stmt is not None:
                statements.append(stmt)
        self._consume(T.RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def _expression_statement(self) -> ExpressionStmt:
        expr = self._expression()
        self._consume(T.SEMICOLON, "Expect ';' after expression.")
        return ExpressionStmt(expr)

    # =================================================================
    # Expressions
    # =================================================================

    def _expression(self) -> Expr:
        return self._assignment()

    def _assignment(self) -> Expr:
        expr = self._or()

        if self._match(T.EQUAL):
            equals = self._previous()
            value = self._assignment()
            match expr:
                case Variable(name=name):
                    return Assign(name, value)
                case Get(object=obj, name=name):
                    return Set(obj, name, value)
                case Index(object=obj, bracket=bracket, index=index):
                    return IndexAssign(obj, bracket, index, value)
            # Reported but not thrown: the parser is not confused.
            self._error(equals, "Invalid assignment target.")

        return expr

    def _or(self) -> Expr:
        expr = self._and()
        while self._match(T.OR):
            operator = self._previous()
            expr = Logical(expr, operator, self._and())
        return expr

    def _and(self) -> Expr:
        expr = self._equality()
        while self._match(T.AND):
            operator = self._previous()
            expr = Logical(expr, operator, self._equality())
        return expr

    def _binary_level(self, operand, *types: T) -> Expr:
        expr = operand()
        while self._match(*types):
            operator = self._previous()
            expr = Binary(expr, operator, operand())
        return expr

    def _equality(self) -> Expr:
        return self._binary_level(self._comparison, T.BANG_EQUAL, T.EQUAL_EQUAL)

    def _comparison(self) -> Expr:
        return self._binary_level(self._term, T.GREATER, T.GREATER_EQUAL, T.LESS, T.LESS_EQUAL)

    def _term(self) -> Expr:
        return self._binary_level(self._factor, T.MINUS, T.PLUS)

    def _factor(self) -> Expr:
        return self._binary_level(self._unary, T.SLASH, T.STAR)

    def _unary(self) -> Expr:
        if self._match(T.BANG, T.MINUS):
            operator = self._previous()
            return Unary(operator, self._unary())
        return self._call()

    def _call(self) -> Expr:
        expr = self._primary()
        while True:
            if self._match(T.LEFT_PAREN):
                expr = self._finish_call(expr)
            elif self._match(T.DOT):
                name = self._consume(T.IDENTIFIER, "Expect property name after '.'.")
                expr = Get(expr, name)
            elif self._match(T.LEFT_BRACKET):
                bracket = self._previous()
                index = self._expression()
                self._consume(T.RIGHT_BRACKET, "Expect ']' after index.")
                expr = Index(expr, bracket, index)
            else:
                break
        return expr

    def _finish_call(self, callee: Expr) -> Call:
        arguments: List[Expr] = []
        if not self._check(T.RIGHT_PAREN):
            while True:
                if len(arguments) >= MAX_ARGUMENTS:
                    self._error(self._peek(), f"Can't have more than {MAX_ARGUMENTS} arguments.")
                arguments.append(self._expression())
                if not self._match(T.COMMA):
                    break
        paren = self._consume(T.RIGHT_PAREN, "Expect ')' after arguments.")
        return Call(callee, paren, arguments)

    def _primary(self) -> Expr:
        if self._match(T.FALSE):
            return Literal(False)
        if self._match(T.TRUE):
            return Literal(True)
        if self._match(T.NULL):
            return Literal(None)
        if self._match(T.NUMBER, T.STRING):
            return Literal(self._previous().literal)
        if self._match(T.FSTRING):
            return self._interpolated_string(self._previous())
        if self._match(T.SUPER):
            keyword = self._previous()
            self._consume(T.DOT, "Expect '.' after 'super'.")
            method = self._consume(T.IDENTIFIER, "Expect superclass method name.")
            return Super(keyword, method)
        if self._match(T.SELF):
            return Self(self._previous())
        if self._match(T.IDENTIFIER):
            return Variable(self._previous())
        if self._match(T.LEFT_PAREN):
            expr = self._expression()
            self._consume(T.RIGHT_PAREN, "Expect ')' after expression.")
            return Grouping(expr)
        if self._match(T.LEFT_BRACKET):
            return self._array_literal(self._previous())

        raise self._error(self._peek(), "Expect expression.")

    def _array_literal(self, bracket: Token) -> ArrayLiteral:
        elements: List[Expr] = []
        if not self._check(T.RIGHT_BRACKET):
            while True:
                elements.append(self._expression())
                if not self._match(T.COMMA):
                    break
        self._consume(T.RIGHT_BRACKET, "Expect ']' after array elements.")
        return ArrayLiteral(bracket, elements)

    def _interpolated_string(self, token: Token) -> InterpolatedString:
        """Split an f-string body into literal text and embedded expressions.

        Each `{...}` segment is scanned and parsed on its own, with token
        positions offset to where the segment sits in the original source.
        """
        body = token.literal
        parts: List[Expr] = []
        text: List[str] = []
        line, column = token.line, token.column + 2  # past `f"`
        i = 0
        while i < len(body):
            c = body[i]
            if c == '\\' and i + 1 < len(body):
                nxt = body[i + 1]
                text.append(nxt if nxt in '"{}\\' else c + nxt)
                line, column = _step(line, column, c)
                line, column = _step(line, column, nxt)
                i += 2
                continue
            if c != '{':
                text.append(c)
                line, column = _step(line, column, c)
                i += 1
                continue

            end = _closing_brace(body, i)
            if text:
                parts.append(Literal("".join(text)))
                text = []
            line, column = _step(line, column, c)
            source = body[i + 1:end]
            parts.append(self._embedded_expression(source, line, column, token))
            for ch in body[i + 1:end + 1]:
                line, column = _step(line, column, ch)
            i = end + 1

        if text or not parts:
            parts.append(Literal("".join(text)))
        return InterpolatedString(token, parts)

    def _embedded_expression(self, source: str, line: int, column: int, token: Token) -> Expr:
        tokens = Lexer(source, self.reporter, line=line, column=column).scan_tokens()
        if len(tokens) == 1:
            raise self._error(token, "Empty expression in f-string.")
        sub = Parser(tokens, self.reporter)
        expr = sub._expression()
        if not sub._is_at_end():
            raise sub._error(sub._peek(), "Expect '}' after f-string expression.")
        return expr

    # =================================================================
    # Token helpers
    # =================================================================

    def _match(self, *types: T) -> bool:
        for type_ in types:
            if self._check(type_):
                self._advance()
                return True
        return False

    def _consume(self, type_: T, message: str) -> Token:
        if self._check(type_):
            return self._advance()
        raise self._error(self._peek(), message)

    def _check(self, type_: T) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type == type_

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        return self._peek().type == T.EOF

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _error(self, token: Token, message: str) -> ParseError:
        self.reporter.error_at(token, message)
        return ParseError(message)

    def _synchronize(self):
        """Discard tokens until just past a ';' or in front of a statement keyword."""
        self._advance()
        while not self._is_at_end():
            if self._previous().type == T.SEMICOLON:
                return
            if self._peek().type in STATEMENT_KEYWORDS:
                return
            self._advance()


def _step(line: int, column: int, ch: str):
    if ch == '\n':
        return line + 1, 1
    return line, column + 1


def _closing_brace(body: str, start: int) -> int:
    """Index of the `}` matching the `{` at `start` (the lexer guarantees one exists)."""
    depth = 0
    i = start
    while i < len(body):
        c = body[i]
        if c == '\\':
            i += 2
            continue
        if c == '{':
            depth += 1
        elif c == '}':
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return len(body)
