"""
C# FFI Bindings Generator - Generate layered C# bindings from a foreign declaration tree
"""

from .declarations import (
    Class,
    Enum,
    Function,
    Namespace,
    Struct,
    Typedef,
    StructuralInvariantViolation,
    flatten,
    walk,
)
from .type_mapper import MarshalHint, TypeMapper, TypeMapping
from .callbacks import CallbackGenerator, DelegateTypeDefinition, identify_function_pointers
from .memory import MemoryHelperGenerator
from .code_generators import CodeGenerator, OutputBuilder
from .generator import BindingGenerator, CodeSection, GeneratedCode
from .constants import (
    PRIMITIVE_TYPE_MAP,
    REQUIRED_USINGS,
    DEFAULT_NAMESPACE,
    NATIVE_METHODS_CLASS,
)

__version__ = "0.1.0"

__all__ = [
    "Class",
    "Enum",
    "Function",
    "Namespace",
    "Struct",
    "Typedef",
    "StructuralInvariantViolation",
    "flatten",
    "walk",
    "MarshalHint",
    "TypeMapper",
    "TypeMapping",
    "CallbackGenerator",
    "DelegateTypeDefinition",
    "identify_function_pointers",
    "MemoryHelperGenerator",
    "CodeGenerator",
    "OutputBuilder",
    "BindingGenerator",
    "CodeSection",
    "GeneratedCode",
    "PRIMITIVE_TYPE_MAP",
    "REQUIRED_USINGS",
    "DEFAULT_NAMESPACE",
    "NATIVE_METHODS_CLASS",
]
