"""
Type mapping logic for converting C/C++ type spellings to C# types
"""

import enum
import re
from dataclasses import dataclass, replace

from .constants import (
    CSHARP_KEYWORDS,
    CV_QUALIFIERS,
    NARROW_CHAR_TYPES,
    OPAQUE_HANDLE_TYPE,
    PRIMITIVE_TYPE_MAP,
    TAG_KEYWORDS,
    WIDE_CHAR_TYPES,
)


class MarshalHint(enum.Enum):
    RAW_POINTER = "RawPointer"
    OWNED_STRING = "OwnedString"
    FIXED_ARRAY = "FixedArray"


@dataclass(frozen=True)
class TypeMapping:
    original_name: str
    target_name: str
    is_pointer: bool = False
    is_const: bool = False
    is_primitive: bool = False
    is_array: bool = False
    array_length: int | None = None
    marshal_hint: MarshalHint | None = None
    # Element spelling behind a string or array mapping, used for marshal attributes
    element_name: str | None = None


_ARRAY_PATTERN = re.compile(r"^(?P<element>.*?)\s*\[\s*(?P<length>\d*)\s*\]$")
_STRIP_WORDS = re.compile(r"\b(?:%s)\b" % "|".join(CV_QUALIFIERS + TAG_KEYWORDS))
_CONST_WORD = re.compile(r"\bconst\b")


def normalize_type_spelling(type_string: str) -> str:
    """Collapse whitespace and glue pointer/reference marks to the type name"""
    spelling = " ".join(type_string.split())
    spelling = re.sub(r"\s*([*&])", r"\1", spelling)
    spelling = re.sub(r"([*&])(?=[A-Za-z_])", r"\1 ", spelling)
    return spelling


def clean_type_name(type_string: str) -> str:
    """Strip cv-qualifiers, pointer/reference marks and tag keywords"""
    cleaned = type_string.replace("*", " ").replace("&", " ")
    cleaned = _STRIP_WORDS.sub(" ", cleaned)
    return " ".join(cleaned.split())


def pointer_depth(type_string: str) -> int:
    return type_string.count("*") + type_string.count("&")


def escape_keyword(name: str) -> str:
    """Escape C# keywords by prefixing with @"""
    if name in CSHARP_KEYWORDS:
        return f"@{name}"
    return name


class TypeMapper:
    """Maps C/C++ type spellings to C# types

    Mappings are memoized per instance; map_type is referentially transparent
    so the cache never changes an answer.

    Args:
        typedefs: typedef name -> underlying spelling. A value type spelled
            with one of these names maps like the type it aliases.
    """

    def __init__(self, typedefs: dict[str, str] | None = None):
        self.type_map = PRIMITIVE_TYPE_MAP.copy()
        self.typedefs = dict(typedefs or {})
        self._cache: dict[str, TypeMapping] = {}
        self._resolving: set[str] = set()
        # Enum name patterns that get a [Flags] attribute
        self.flag_enum_patterns: list[tuple[str, bool]] = []

    def with_typedefs(self, typedefs) -> "TypeMapper":
        """New mapper that resolves the given Typedef declarations, first name wins"""
        aliases = {}
        for typedef in typedefs:
            aliases.setdefault(typedef.name, typedef.underlying_type)
        mapper = TypeMapper(aliases)
        mapper.flag_enum_patterns = list(self.flag_enum_patterns)
        return mapper

    def map_type(self, type_string: str) -> TypeMapping:
        """Map a foreign type spelling to a TypeMapping"""
        mapping = self._cache.get(type_string)
        if mapping is None:
            mapping = self._map_uncached(type_string)
            self._cache[type_string] = mapping
        return mapping

    def map_name(self, type_string: str) -> str:
        return self.map_type(type_string).target_name

    def _map_uncached(self, type_string: str) -> TypeMapping:
        normalized = normalize_type_spelling(type_string)
        is_const = bool(_CONST_WORD.search(normalized))

        array_match = _ARRAY_PATTERN.match(normalized)
        if array_match:
            element = self.map_type(array_match.group("element"))
            length = array_match.group("length")
            if not length:
                # Unsized arrays decay to a pointer to their first element
                return TypeMapping(
                    original_name=type_string,
                    target_name=OPAQUE_HANDLE_TYPE,
                    is_pointer=True,
                    is_const=is_const,
                    is_array=True,
                    marshal_hint=MarshalHint.RAW_POINTER,
                    element_name=element.original_name,
                )
            return TypeMapping(
                original_name=type_string,
                target_name=f"{element.target_name}[]",
                is_pointer=element.is_pointer,
                is_const=is_const,
                is_primitive=element.is_primitive,
                is_array=True,
                array_length=int(length),
                marshal_hint=MarshalHint.FIXED_ARRAY,
                element_name=element.original_name,
            )

        cleaned = clean_type_name(normalized)
        depth = pointer_depth(normalized)

        # The cleaned name describes the pointee, so only look it up for value types
        target = None
        if depth == 0:
            target = self.type_map.get(cleaned)
        if target is None:
            target = self.type_map.get(normalized)

        if target is not None:
            hint = None
            if target == "string":
                hint = MarshalHint.OWNED_STRING
            elif depth:
                hint = MarshalHint.RAW_POINTER
            return TypeMapping(
                original_name=type_string,
                target_name=target,
                is_pointer=depth > 0,
                is_const=is_const,
                is_primitive=True,
                marshal_hint=hint,
                element_name=cleaned if hint is MarshalHint.OWNED_STRING else None,
            )

        if depth:
            if depth == 1 and "*" in normalized and cleaned in NARROW_CHAR_TYPES | WIDE_CHAR_TYPES:
                return TypeMapping(
                    original_name=type_string,
                    target_name="string",
                    is_pointer=True,
                    is_const=is_const,
                    marshal_hint=MarshalHint.OWNED_STRING,
                    element_name=cleaned,
                )
            # Everything else, including pointers back to the enclosing struct,
            # becomes an opaque handle and is never expanded.
            return TypeMapping(
                original_name=type_string,
                target_name=OPAQUE_HANDLE_TYPE,
                is_pointer=True,
                is_const=is_const,
                marshal_hint=MarshalHint.RAW_POINTER,
            )

        # C# aliases cannot refer to other aliases, so follow typedef chains
        if cleaned in self.typedefs and cleaned not in self._resolving:
            self._resolving.add(cleaned)
            try:
                resolved = self.map_type(self.typedefs[cleaned])
            finally:
                self._resolving.discard(cleaned)
            return replace(resolved, original_name=type_string, is_const=is_const or resolved.is_const)

        # Assume the name refers to a declaration emitted in the same run
        return TypeMapping(
            original_name=type_string,
            target_name=cleaned,
            is_const=is_const,
        )

    def add_flag_enum(self, pattern: str, is_regex: bool = False):
        self.flag_enum_patterns.append((pattern, is_regex))

    def is_flag_enum(self, enum_name: str) -> bool:
        for pattern, is_regex in self.flag_enum_patterns:
            if is_regex:
                if re.fullmatch(pattern, enum_name):
                    return True
            elif pattern == enum_name:
                return True
        return False


def is_wide_string(mapping: TypeMapping) -> bool:
    return mapping.marshal_hint is MarshalHint.OWNED_STRING and mapping.element_name in WIDE_CHAR_TYPES


def native_return_type(mapping: TypeMapping) -> str:
    """C# type used when a native function hands this type back

    Returned C strings stay owned by the native side, so they surface as a raw
    pointer that the caller copies (see Wrappers).
    """
    if mapping.marshal_hint is MarshalHint.OWNED_STRING:
        return OPAQUE_HANDLE_TYPE
    return mapping.target_name


def field_type(mapping: TypeMapping) -> str:
    """C# type of a struct field; struct layouts only hold unmanaged types

    Strings stay native pointers and bool is stored as its one-byte C
    representation, so every generated struct can cross a LibraryImport
    boundary by value and be pinned.
    """
    if mapping.marshal_hint is MarshalHint.OWNED_STRING:
        return OPAQUE_HANDLE_TYPE
    if mapping.target_name == "bool":
        return "byte"
    return mapping.target_name


def marshal_attribute(mapping: TypeMapping) -> str:
    """MarshalAs attribute for a parameter, empty when not needed"""
    if mapping.target_name == "bool":
        return "[MarshalAs(UnmanagedType.I1)]"
    if mapping.marshal_hint is MarshalHint.OWNED_STRING and is_wide_string(mapping):
        return "[MarshalAs(UnmanagedType.LPWStr)]"
    # LibraryImport handles narrow strings through StringMarshalling.Utf8
    return ""
