"""
Declaration model consumed by every generation stage

The tree is produced once by a frontend (see clang_frontend) and never mutated.
Sequences are stored as tuples so a declaration can be shared between stages
and used as a dictionary key.
"""

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Union

UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class StructuralInvariantViolation(TypeError):
    """Raised when something outside the closed Declaration union reaches a generator"""


def _freeze_pairs(pairs) -> tuple:
    return tuple((name, value) for name, value in pairs)


@dataclass(frozen=True)
class Function:
    name: str
    return_type: str = "void"
    parameters: tuple[tuple[str, str], ...] = ()
    documentation: str | None = None
    is_virtual: bool = False
    is_static: bool = False

    def __post_init__(self):
        object.__setattr__(self, "parameters", _freeze_pairs(self.parameters))


@dataclass(frozen=True)
class Struct:
    name: str
    fields: tuple[tuple[str, str], ...] = ()
    documentation: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "fields", _freeze_pairs(self.fields))


@dataclass(frozen=True)
class Enum:
    """Enumeration with unsigned 64-bit values

    Negative values are stored as their two's-complement bit pattern so that
    flag enums survive bitwise combination downstream.
    """
    name: str
    values: tuple[tuple[str, int], ...] = ()
    documentation: str | None = None

    def __post_init__(self):
        normalized = []
        for member_name, value in self.values:
            value = int(value)
            if value < 0:
                value &= UINT64_MASK
            if value > UINT64_MASK:
                raise ValueError(f"Enum value {member_name}={value} does not fit in 64 bits")
            normalized.append((member_name, value))
        object.__setattr__(self, "values", tuple(normalized))


@dataclass(frozen=True)
class Typedef:
    name: str
    underlying_type: str
    documentation: str | None = None


@dataclass(frozen=True)
class Namespace:
    name: str
    declarations: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "declarations", tuple(self.declarations))


@dataclass(frozen=True)
class Class:
    name: str
    methods: tuple[Function, ...] = ()
    fields: tuple[tuple[str, str], ...] = ()
    documentation: str | None = None
    is_abstract: bool = False

    def __post_init__(self):
        object.__setattr__(self, "methods", tuple(self.methods))
        object.__setattr__(self, "fields", _freeze_pairs(self.fields))


Declaration = Union[Function, Struct, Enum, Typedef, Namespace, Class]

DECLARATION_TYPES = (Function, Struct, Enum, Typedef, Namespace, Class)


class DeclarationBuckets(NamedTuple):
    """Declarations grouped by kind, in depth-first declaration order"""
    functions: tuple[Function, ...] = ()
    structs: tuple[Struct, ...] = ()
    enums: tuple[Enum, ...] = ()
    typedefs: tuple[Typedef, ...] = ()
    classes: tuple[Class, ...] = ()


def check_declaration(decl) -> None:
    """Fail loudly if decl is not a member of the Declaration union"""
    if not isinstance(decl, DECLARATION_TYPES):
        raise StructuralInvariantViolation(
            f"Unsupported declaration variant: {type(decl).__name__}"
        )
    if isinstance(decl, Class):
        for method in decl.methods:
            if not isinstance(method, Function):
                raise StructuralInvariantViolation(
                    f"Class '{decl.name}' has a non-function method: {type(method).__name__}"
                )


def walk(declarations) -> Iterator[Declaration]:
    """Yield every declaration depth-first, descending into namespaces

    A namespace is yielded before its contents. Class methods belong to their
    class and are not yielded on their own.
    """
    for decl in declarations:
        check_declaration(decl)
        yield decl
        if isinstance(decl, Namespace):
            yield from walk(decl.declarations)


def flatten(declarations) -> DeclarationBuckets:
    """Group a declaration tree into per-kind tuples without touching the tree"""
    decls = [d for d in walk(declarations) if not isinstance(d, Namespace)]
    return DeclarationBuckets(
        functions=tuple(d for d in decls if isinstance(d, Function)),
        structs=tuple(d for d in decls if isinstance(d, Struct)),
        enums=tuple(d for d in decls if isinstance(d, Enum)),
        typedefs=tuple(d for d in decls if isinstance(d, Typedef)),
        classes=tuple(d for d in decls if isinstance(d, Class)),
    )


def struct_like_types(declarations) -> tuple[str, ...]:
    """Distinct names of structs and method-less classes, first-seen order"""
    names = {}
    for decl in walk(declarations):
        if isinstance(decl, Struct) or (isinstance(decl, Class) and not decl.methods):
            names.setdefault(decl.name, None)
    return tuple(names)
