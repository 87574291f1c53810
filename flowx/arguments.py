from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Union

from .cadence import (
    STRING_LIKE_TYPES,
    AddressType,
    OptionalType,
    Parameter,
    Program,
    SimpleType,
    TypeRef,
    parse_literal,
    parse_program,
)
from .values import Value, decode_json


logger = logging.getLogger(__name__)

# Raises ValueError (LiteralError for the built-in parser) when the text is not a literal of the type.
LiteralParser = Callable[[str, TypeRef], Value]


class ArgumentError(ValueError):
    pass


class ArgumentCountMismatchError(ArgumentError):
    def __init__(self, got: int, want: int) -> None:
        super().__init__(f"argument count is {got}, expected {want}")
        self.got = got
        self.want = want


class ArgumentTypeMismatchError(ArgumentError):
    def __init__(self, identifier: str, expected_type: str) -> None:
        super().__init__(f"argument `{identifier}` is not expected type `{expected_type}`")
        self.identifier = identifier
        self.expected_type = expected_type


def unwrap_optional(type_ref: TypeRef) -> TypeRef:
    seen: set[int] = set()
    while isinstance(type_ref, OptionalType) and id(type_ref) not in seen:
        seen.add(id(type_ref))
        type_ref = type_ref.inner
    return type_ref


def prepare_argument(raw: str, leaf_type: TypeRef) -> str:
    """Rewrite a command-line string so it reads as a literal of ``leaf_type``."""
    if isinstance(leaf_type, SimpleType) and leaf_type.name in STRING_LIKE_TYPES:
        if len(raw) > 0 and not raw.startswith('"'):
            return f'"{raw}"'
        return raw
    if isinstance(leaf_type, AddressType):
        if "0x" not in raw:
            return f"0x{raw}"
        return raw
    return raw


def coerce_argument(
    parameter: Parameter,
    raw: str,
    literal_parser: LiteralParser = parse_literal,
) -> Value:
    leaf_type = unwrap_optional(parameter.type)
    literal = prepare_argument(raw, leaf_type)
    if literal != raw:
        logger.debug("Argument %s rewritten from %r to %r", parameter.identifier, raw, literal)

    try:
        return literal_parser(literal, leaf_type)
    except ValueError:
        if leaf_type is parameter.type:
            raise ArgumentTypeMismatchError(parameter.identifier, leaf_type.qualified_string()) from None

    # Optional parameters also accept `nil`.
    try:
        return literal_parser(raw, parameter.type)
    except ValueError:
        raise ArgumentTypeMismatchError(parameter.identifier, leaf_type.qualified_string()) from None


def coerce_arguments(
    parameters: Sequence[Parameter],
    raw_args: Sequence[str],
    literal_parser: LiteralParser = parse_literal,
) -> list[Value]:
    if len(raw_args) != len(parameters):
        raise ArgumentCountMismatchError(got=len(raw_args), want=len(parameters))
    return [coerce_argument(parameter, raw, literal_parser) for parameter, raw in zip(parameters, raw_args)]


def entry_point_parameters(program: Program) -> Optional[list[Parameter]]:
    """Parameters of the entry point: script ``main``, transaction, or sole contract initializer.

    Later candidates take precedence, so a file declaring a sole contract is
    always treated as that contract's initializer.
    """
    parameters: Optional[list[Parameter]] = None

    function = program.function_entry_point()
    if function is not None:
        parameters = function.parameters

    if len(program.transaction_declarations) == 1:
        transaction = program.transaction_declarations[0]
        if transaction.parameters is not None:
            parameters = transaction.parameters

    contract = program.sole_contract_declaration()
    if contract is not None and len(contract.initializers) == 1:
        parameters = contract.initializers[0].parameters

    return parameters


def parse_arguments_without_type(
    file_name: str,
    code: Union[str, bytes],
    args: Sequence[str],
) -> list[Value]:
    program = parse_program(file_name, code)
    parameters = entry_point_parameters(program) or []
    return coerce_arguments(parameters, args)


def parse_arguments_json(text: str) -> list[Value]:
    """Decode ``[{"type": ..., "value": ...}, ...]``; raises DecodeError naming the bad index."""
    return decode_json(text)


def get_authorizer_count(file_name: str, code: Union[str, bytes]) -> int:
    program = parse_program(file_name, code)
    if len(program.transaction_declarations) != 1:
        return 0
    prepare = program.transaction_declarations[0].prepare
    if prepare is None:
        return 0
    return len(prepare.parameters)
