"""Declaration scanner and literal parser for contract-language source.

Only the surface the CLI needs is recognised: top-level transactions (with
their ``prepare`` block), functions and composite declarations (with their
initializers), parameter lists with type annotations, and literal values for
the argument types a user can type on a command line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from .values import (
    FIXED_POINT_RANGES,
    INTEGER_RANGES,
    Value,
    check_integer_range,
    normalize_address_hex,
    parse_fixed_point_text,
)


class ProgramError(ValueError):
    pass


class LiteralError(ValueError):
    pass


# Types


class TypeRef:
    def qualified_string(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.qualified_string()


@dataclass(frozen=True)
class OptionalType(TypeRef):
    inner: TypeRef

    def qualified_string(self) -> str:
        return f"{self.inner.qualified_string()}?"


@dataclass(frozen=True)
class AddressType(TypeRef):
    def qualified_string(self) -> str:
        return "Address"


@dataclass(frozen=True)
class SimpleType(TypeRef):
    name: str

    def qualified_string(self) -> str:
        return self.name


@dataclass(frozen=True)
class VariableSizedType(TypeRef):
    element: TypeRef

    def qualified_string(self) -> str:
        return f"[{self.element.qualified_string()}]"


@dataclass(frozen=True)
class ConstantSizedType(TypeRef):
    element: TypeRef
    size: int

    def qualified_string(self) -> str:
        return f"[{self.element.qualified_string()}; {self.size}]"


@dataclass(frozen=True)
class DictionaryType(TypeRef):
    key: TypeRef
    value: TypeRef

    def qualified_string(self) -> str:
        return f"{{{self.key.qualified_string()}: {self.value.qualified_string()}}}"


@dataclass(frozen=True)
class NominalType(TypeRef):
    name: str

    def qualified_string(self) -> str:
        return self.name


PATH_TYPE_DOMAINS = {
    "Path": ("storage", "private", "public"),
    "StoragePath": ("storage",),
    "CapabilityPath": ("private", "public"),
    "PublicPath": ("public",),
    "PrivatePath": ("private",),
}

STRING_LIKE_TYPES = ("String", "Character")

SIMPLE_TYPE_NAMES = frozenset(
    set(INTEGER_RANGES)
    | set(FIXED_POINT_RANGES)
    | set(PATH_TYPE_DOMAINS)
    | set(STRING_LIKE_TYPES)
    | {"Bool", "Void", "Never", "AnyStruct", "AnyResource", "Number", "SignedNumber", "Integer",
       "SignedInteger", "FixedPoint", "SignedFixedPoint", "Block", "MetaType", "Type"}
)


# Tokens


@dataclass(frozen=True)
class Token:
    kind: str
    text: str


_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|[0-9][A-Za-z0-9_.]*")
OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {value: key for key, value in OPENERS.items()}


def _skip_block_comment(file_name: str, code: str, start: int) -> int:
    depth = 0
    i = start
    while i < len(code):
        if code.startswith("/*", i):
            depth += 1
            i += 2
        elif code.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    raise ProgramError(f"{file_name}: unterminated block comment")


def _string_end(file_name: str, code: str, start: int) -> int:
    i = start + 1
    while i < len(code):
        ch = code[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        if ch == "\n":
            break
        i += 1
    raise ProgramError(f"{file_name}: unterminated string literal")


def tokenize(file_name: str, code: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    while i < len(code):
        ch = code[i]
        if ch.isspace():
            i += 1
        elif code.startswith("//", i):
            end = code.find("\n", i)
            i = len(code) if end < 0 else end
        elif code.startswith("/*", i):
            i = _skip_block_comment(file_name, code, i)
        elif ch == '"':
            end = _string_end(file_name, code, i)
            tokens.append(Token("string", code[i:end]))
            i = end
        else:
            match = _WORD.match(code, i)
            if match is not None:
                kind = "number" if ch.isdigit() else "ident"
                tokens.append(Token(kind, match.group()))
                i = match.end()
            else:
                tokens.append(Token("punct", ch))
                i += 1
    return tokens


def _check_balanced(file_name: str, tokens: list[Token]) -> None:
    stack: list[str] = []
    for token in tokens:
        if token.kind != "punct":
            continue
        if token.text in OPENERS:
            stack.append(token.text)
        elif token.text in CLOSERS:
            if not stack or stack[-1] != CLOSERS[token.text]:
                raise ProgramError(f"{file_name}: unbalanced '{token.text}'")
            stack.pop()
    if stack:
        raise ProgramError(f"{file_name}: unclosed '{stack[-1]}'")


def _matching(tokens: list[Token], start: int) -> int:
    opener = tokens[start].text
    closer = OPENERS[opener]
    depth = 0
    for i in range(start, len(tokens)):
        text = tokens[i].text
        if tokens[i].kind != "punct":
            continue
        if text == opener:
            depth += 1
        elif text == closer:
            depth -= 1
            if depth == 0:
                return i
    raise ProgramError(f"unclosed '{opener}'")


def _render(tokens: list[Token]) -> str:
    out = ""
    for token in tokens:
        if token.text in {",", ":", ";"}:
            out += token.text + " "
        elif token.text == "&" and out.endswith("auth"):
            out += " &"
        else:
            out += token.text
    return out.strip()


class _TypeParser:
    def __init__(self, tokens: list[Token], pos: int = 0, end: int | None = None) -> None:
        self.tokens = tokens
        self.pos = pos
        self.end = len(tokens) if end is None else end

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index >= self.end:
            return ""
        return self.tokens[index].text

    def _expect(self, text: str) -> None:
        if self._peek() != text:
            found = self._peek() or "end of input"
            raise ProgramError(f"expected '{text}' in type annotation, found '{found}'")
        self.pos += 1

    def parse(self) -> TypeRef:
        if self._peek() == "@":
            self.pos += 1
        result = self._base()
        while self._peek() == "?":
            self.pos += 1
            result = OptionalType(result)
        return result

    def _base(self) -> TypeRef:
        start = self.pos
        head = self._peek()

        if head == "[":
            self.pos += 1
            element = self.parse()
            if self._peek() == ";":
                self.pos += 1
                size_text = self._peek()
                if not size_text.isdigit():
                    raise ProgramError(f"invalid constant array size '{size_text}'")
                self.pos += 1
                self._expect("]")
                return ConstantSizedType(element, int(size_text))
            self._expect("]")
            return VariableSizedType(element)

        if head == "{":
            self.pos += 1
            key = self.parse()
            if self._peek() == ":":
                self.pos += 1
                value = self.parse()
                self._expect("}")
                return DictionaryType(key, value)
            self._skip_restrictions()
            return NominalType(_render(self.tokens[start : self.pos]))

        if head == "&":
            self.pos += 1
            self.parse()
            return NominalType(_render(self.tokens[start : self.pos]))

        if head == "auth":
            self.pos += 1
            if self._peek() == "(":
                self.pos = _matching(self.tokens, self.pos) + 1
            self._expect("&")
            self.parse()
            return NominalType(_render(self.tokens[start : self.pos]))

        if head == "(":
            self.pos = _matching(self.tokens, self.pos) + 1
            if self._peek() == ":":
                self.pos += 1
                self.parse()
            return NominalType(_render(self.tokens[start : self.pos]))

        if self.pos < self.end and self.tokens[self.pos].kind == "ident":
            self.pos += 1
            while self._peek() == "." and self.pos + 1 < self.end and self.tokens[self.pos + 1].kind == "ident":
                self.pos += 2
            name = _render(self.tokens[start : self.pos])
            generic = False
            if self._peek() == "<":
                generic = True
                self.pos += 1
                self.parse()
                while self._peek() == ",":
                    self.pos += 1
                    self.parse()
                self._expect(">")
            if self._looks_like_restrictions():
                self.pos += 1
                self._skip_restrictions()
                return NominalType(_render(self.tokens[start : self.pos]))
            if generic:
                return NominalType(_render(self.tokens[start : self.pos]))
            if name == "Address":
                return AddressType()
            if name in SIMPLE_TYPE_NAMES:
                return SimpleType(name)
            return NominalType(name)

        raise ProgramError(f"invalid type annotation near '{head or 'end of input'}'")

    def _looks_like_restrictions(self) -> bool:
        if self._peek() != "{":
            return False
        offset = 1
        while True:
            if self.pos + offset >= self.end or self.tokens[self.pos + offset].kind != "ident":
                return False
            offset += 1
            while self._peek(offset) == "." and self.pos + offset + 1 < self.end:
                offset += 2
            following = self._peek(offset)
            if following == "}":
                return True
            if following != ",":
                return False
            offset += 1

    def _skip_restrictions(self) -> None:
        while self._peek() not in {"}", ""}:
            self.pos += 1
        self._expect("}")


def parse_type(text: str) -> TypeRef:
    tokens = tokenize("<type>", text)
    parser = _TypeParser(tokens)
    result = parser.parse()
    if parser.pos != len(tokens):
        raise ProgramError(f"unexpected '{tokens[parser.pos].text}' in type annotation '{text}'")
    return result


# Declarations


@dataclass
class Parameter:
    label: str
    identifier: str
    type: TypeRef
    annotation: str = ""


@dataclass
class FunctionDeclaration:
    identifier: str
    parameters: list[Parameter] = field(default_factory=list)


@dataclass
class TransactionDeclaration:
    # None when the transaction declares no parameter list at all.
    parameters: Optional[list[Parameter]] = None
    prepare: Optional[FunctionDeclaration] = None


@dataclass
class CompositeDeclaration:
    kind: str
    identifier: str
    initializers: list[FunctionDeclaration] = field(default_factory=list)


@dataclass
class Program:
    file_name: str
    transaction_declarations: list[TransactionDeclaration] = field(default_factory=list)
    function_declarations: list[FunctionDeclaration] = field(default_factory=list)
    composite_declarations: list[CompositeDeclaration] = field(default_factory=list)
    interface_declarations: list[CompositeDeclaration] = field(default_factory=list)

    def function_entry_point(self) -> Optional[FunctionDeclaration]:
        if len(self.function_declarations) != 1:
            return None
        function = self.function_declarations[0]
        return function if function.identifier == "main" else None

    def sole_contract_declaration(self) -> Optional[CompositeDeclaration]:
        if len(self.composite_declarations) != 1 or self.interface_declarations:
            return None
        composite = self.composite_declarations[0]
        return composite if composite.kind == "contract" else None


COMPOSITE_KINDS = ("contract", "resource", "struct", "event", "enum", "attachment")


def _split_top_level(tokens: list[Token], separator: str) -> list[list[Token]]:
    parts: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.kind == "punct":
            if token.text in OPENERS or token.text == "<":
                depth += 1
            elif token.text in CLOSERS or token.text == ">":
                depth -= 1
            elif token.text == separator and depth == 0:
                parts.append([])
                continue
        parts[-1].append(token)
    return parts


def _parse_parameters(file_name: str, tokens: list[Token]) -> list[Parameter]:
    if not tokens:
        return []
    parameters: list[Parameter] = []
    for segment in _split_top_level(tokens, ","):
        colon = next((i for i, token in enumerate(segment) if token.text == ":"), -1)
        names = segment[:colon] if colon >= 0 else []
        if colon < 0 or len(names) not in (1, 2) or any(token.kind != "ident" for token in names):
            raise ProgramError(f"{file_name}: invalid parameter '{_render(segment)}'")
        type_tokens = segment[colon + 1 :]
        parser = _TypeParser(type_tokens)
        try:
            param_type = parser.parse()
        except ProgramError as exc:
            raise ProgramError(f"{file_name}: {exc}") from exc
        if parser.pos != len(type_tokens):
            raise ProgramError(f"{file_name}: invalid type annotation '{_render(type_tokens)}'")
        parameters.append(
            Parameter(
                label=names[0].text if len(names) == 2 else "",
                identifier=names[-1].text,
                type=param_type,
                annotation=_render(type_tokens),
            )
        )
    return parameters


def _parameter_list(file_name: str, tokens: list[Token], open_index: int) -> tuple[list[Parameter], int]:
    close = _matching(tokens, open_index)
    return _parse_parameters(file_name, tokens[open_index + 1 : close]), close + 1


def _find_members(file_name: str, tokens: list[Token], open_index: int, keyword: str) -> list[FunctionDeclaration]:
    close = _matching(tokens, open_index)
    found: list[FunctionDeclaration] = []
    i = open_index + 1
    while i < close:
        token = tokens[i]
        if token.kind == "punct" and token.text in OPENERS:
            i = _matching(tokens, i) + 1
            continue
        if token.kind == "ident" and token.text == keyword and tokens[i + 1].text == "(":
            parameters, i = _parameter_list(file_name, tokens, i + 1)
            found.append(FunctionDeclaration(keyword, parameters))
            continue
        i += 1
    return found


def _skip_to_block(tokens: list[Token], i: int) -> int:
    while i < len(tokens) and tokens[i].text != "{":
        if tokens[i].text in {"(", "["}:
            i = _matching(tokens, i)
        i += 1
    return i


def _function_at(file_name: str, tokens: list[Token], i: int) -> tuple[Optional[FunctionDeclaration], int]:
    """Parse ``fun name(params)[: Type] [{ body }]`` starting at the ``fun`` token."""
    if i + 2 >= len(tokens) or tokens[i + 1].kind != "ident" or tokens[i + 2].text != "(":
        return None, i + 1
    name = tokens[i + 1].text
    parameters, j = _parameter_list(file_name, tokens, i + 2)
    if j < len(tokens) and tokens[j].text == ":":
        parser = _TypeParser(tokens, j + 1)
        try:
            parser.parse()
        except ProgramError as exc:
            raise ProgramError(f"{file_name}: {exc}") from exc
        j = parser.pos
    if j < len(tokens) and tokens[j].text == "{":
        j = _matching(tokens, j) + 1
    return FunctionDeclaration(name, parameters), j


def _transaction_at(file_name: str, tokens: list[Token], i: int) -> tuple[Optional[TransactionDeclaration], int]:
    j = i + 1
    parameters: Optional[list[Parameter]] = None
    if j < len(tokens) and tokens[j].text == "(":
        parameters, j = _parameter_list(file_name, tokens, j)
    if j >= len(tokens) or tokens[j].text != "{":
        return None, i + 1
    prepares = _find_members(file_name, tokens, j, "prepare")
    declaration = TransactionDeclaration(parameters=parameters, prepare=prepares[0] if prepares else None)
    return declaration, _matching(tokens, j) + 1


def _composite_at(file_name: str, tokens: list[Token], i: int) -> tuple[Optional[CompositeDeclaration], bool, int]:
    kind = tokens[i].text
    j = i + 1
    is_interface = False
    if j < len(tokens) and tokens[j].text == "interface":
        is_interface = True
        j += 1
    if j >= len(tokens) or tokens[j].kind != "ident":
        return None, False, i + 1
    name = tokens[j].text
    j += 1

    if kind == "event":
        if j < len(tokens) and tokens[j].text == "(":
            _, j = _parameter_list(file_name, tokens, j)
        return CompositeDeclaration(kind, name), is_interface, j

    j = _skip_to_block(tokens, j)
    if j >= len(tokens):
        return None, False, j
    initializers = _find_members(file_name, tokens, j, "init")
    return CompositeDeclaration(kind, name, initializers), is_interface, _matching(tokens, j) + 1


def parse_program(file_name: str, code: Union[str, bytes]) -> Program:
    if isinstance(code, bytes):
        try:
            code = code.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProgramError(f"{file_name}: source is not valid UTF-8") from exc

    tokens = tokenize(file_name, code)
    _check_balanced(file_name, tokens)
    program = Program(file_name=file_name)

    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token.kind == "punct" and token.text in OPENERS:
            i = _matching(tokens, i) + 1
        elif token.kind != "ident":
            i += 1
        elif token.text == "fun":
            function, i = _function_at(file_name, tokens, i)
            if function is not None:
                program.function_declarations.append(function)
        elif token.text == "transaction":
            transaction, i = _transaction_at(file_name, tokens, i)
            if transaction is not None:
                program.transaction_declarations.append(transaction)
        elif token.text in COMPOSITE_KINDS:
            composite, is_interface, i = _composite_at(file_name, tokens, i)
            if composite is not None:
                if is_interface:
                    program.interface_declarations.append(composite)
                else:
                    program.composite_declarations.append(composite)
        else:
            i += 1

    return program


# Literals


_LITERAL_WORD = re.compile(r"-?[A-Za-z0-9_.]+")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_FIXED_POINT_LITERAL = re.compile(r"-?[0-9]+(?:_+[0-9]+)*\.[0-9]+(?:_+[0-9]+)*")
_INTEGER_DIGITS = {"0x": (16, "0-9a-fA-F"), "0b": (2, "01"), "0o": (8, "0-7")}
_STRING_ESCAPES = {"0": "\0", "n": "\n", "r": "\r", "t": "\t", '"': '"', "'": "'", "\\": "\\"}


def _parse_integer(type_name: str, word: str) -> int:
    negative = word.startswith("-")
    body = word[1:] if negative else word
    base, digit_class = _INTEGER_DIGITS.get(body[:2], (10, "0-9"))
    digits = body[2:] if base != 10 else body
    if not re.fullmatch(rf"[{digit_class}]+(?:_+[{digit_class}]+)*", digits):
        raise LiteralError(f"invalid integer literal '{word}'")
    number = int(digits.replace("_", ""), base)
    if negative:
        number = -number
    try:
        return check_integer_range(type_name, number)
    except ValueError as exc:
        raise LiteralError(str(exc)) from exc


class _LiteralReader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _expect(self, char: str) -> None:
        self.skip_ws()
        if self._peek() != char:
            found = self._peek() or "end of input"
            raise LiteralError(f"expected '{char}', found '{found}'")
        self.pos += 1

    def _word(self) -> str:
        match = _LITERAL_WORD.match(self.text, self.pos)
        if match is None:
            raise LiteralError(f"expected a literal at position {self.pos}")
        self.pos = match.end()
        return match.group()

    def _at_keyword(self, keyword: str) -> bool:
        if not self.text.startswith(keyword, self.pos):
            return False
        following = self.text[self.pos + len(keyword) : self.pos + len(keyword) + 1]
        return not (following.isalnum() or following == "_")

    def _string(self) -> str:
        if self._peek() != '"':
            raise LiteralError("expected a string literal")
        self.pos += 1
        out: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(out)
            if ch == "\n":
                break
            if ch != "\\":
                out.append(ch)
                self.pos += 1
                continue
            escape = self.text[self.pos + 1 : self.pos + 2]
            if escape in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[escape])
                self.pos += 2
            elif escape == "u":
                match = re.compile(r"u\{([0-9a-fA-F]{1,8})\}").match(self.text, self.pos + 1)
                if match is None:
                    raise LiteralError("invalid unicode escape in string literal")
                try:
                    out.append(chr(int(match.group(1), 16)))
                except ValueError as exc:
                    raise LiteralError("invalid unicode code point in string literal") from exc
                self.pos = match.end()
            else:
                raise LiteralError(f"invalid escape sequence '\\{escape}'")
        raise LiteralError("unterminated string literal")

    def _path(self, type_name: str) -> Value:
        if self._peek() != "/":
            raise LiteralError("expected a path literal")
        self.pos += 1
        domain = _IDENTIFIER.match(self.text, self.pos)
        if domain is None or domain.group() not in PATH_TYPE_DOMAINS[type_name]:
            raise LiteralError(f"invalid domain for {type_name} literal")
        self.pos = domain.end()
        if self._peek() != "/":
            raise LiteralError("expected '/' after path domain")
        self.pos += 1
        identifier = _IDENTIFIER.match(self.text, self.pos)
        if identifier is None:
            raise LiteralError("expected path identifier")
        self.pos = identifier.end()
        return Value("Path", (domain.group(), identifier.group()))

    def _sequence(self, close: str, read_item) -> list:
        items = []
        self.skip_ws()
        if self._peek() == close:
            self.pos += 1
            return items
        while True:
            items.append(read_item())
            self.skip_ws()
            if self._peek() == ",":
                self.pos += 1
                self.skip_ws()
                if self._peek() == close:
                    self.pos += 1
                    return items
                continue
            self._expect(close)
            return items

    def read(self, type_ref: TypeRef) -> Value:
        self.skip_ws()

        if isinstance(type_ref, OptionalType):
            if self._at_keyword("nil"):
                self.pos += 3
                return Value("Optional", None)
            return Value("Optional", self.read(type_ref.inner))

        if isinstance(type_ref, AddressType):
            word = self._word()
            if not re.fullmatch(r"0x[0-9a-fA-F]+", word):
                raise LiteralError(f"invalid address literal '{word}'")
            try:
                return Value("Address", "0x" + normalize_address_hex(word))
            except ValueError as exc:
                raise LiteralError(str(exc)) from exc

        if isinstance(type_ref, SimpleType):
            name = type_ref.name
            if name == "String":
                return Value("String", self._string())
            if name == "Character":
                text = self._string()
                if len(text) != 1:
                    raise LiteralError("character literal must contain exactly one character")
                return Value("Character", text)
            if name == "Bool":
                word = self._word()
                if word not in ("true", "false"):
                    raise LiteralError(f"invalid boolean literal '{word}'")
                return Value("Bool", word == "true")
            if name in INTEGER_RANGES:
                return Value(name, _parse_integer(name, self._word()))
            if name in FIXED_POINT_RANGES:
                word = self._word()
                if not _FIXED_POINT_LITERAL.fullmatch(word):
                    raise LiteralError(f"invalid fixed-point literal '{word}'")
                try:
                    return Value(name, parse_fixed_point_text(name, word.replace("_", "")))
                except ValueError as exc:
                    raise LiteralError(str(exc)) from exc
            if name in PATH_TYPE_DOMAINS:
                return self._path(name)

        if isinstance(type_ref, (VariableSizedType, ConstantSizedType)):
            self._expect("[")
            items = self._sequence("]", lambda: self.read(type_ref.element))
            if isinstance(type_ref, ConstantSizedType) and len(items) != type_ref.size:
                raise LiteralError(f"expected {type_ref.size} elements, got {len(items)}")
            return Value("Array", tuple(items))

        if isinstance(type_ref, DictionaryType):
            self._expect("{")

            def read_entry() -> tuple[Value, Value]:
                key = self.read(type_ref.key)
                self._expect(":")
                return key, self.read(type_ref.value)

            return Value("Dictionary", tuple(self._sequence("}", read_entry)))

        raise LiteralError(f"values of type {type_ref} cannot be written as literals")


def parse_literal(text: str, type_ref: TypeRef) -> Value:
    reader = _LiteralReader(text)
    value = reader.read(type_ref)
    reader.skip_ws()
    if reader.pos != len(text):
        raise LiteralError(f"unexpected input after literal: '{text[reader.pos:]}'")
    return value
