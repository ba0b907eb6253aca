"""
Constants and mappings for layered C# FFI bindings generation
"""


# Mapping from C/C++ type spellings to C# types. Pointer forms are matched
# against the whitespace-normalized spelling ("const char *" -> "const char*").
PRIMITIVE_TYPE_MAP = {
    "void": "void",
    "bool": "bool",
    "_Bool": "bool",
    "char": "sbyte",
    "signed char": "sbyte",
    "unsigned char": "byte",
    "short": "short",
    "short int": "short",
    "signed short": "short",
    "unsigned short": "ushort",
    "unsigned short int": "ushort",
    "int": "int",
    "signed": "int",
    "signed int": "int",
    "unsigned": "uint",
    "unsigned int": "uint",
    "long": "int",  # LLP64/Windows width, matches the C# P/Invoke convention
    "long int": "int",
    "unsigned long": "uint",
    "unsigned long int": "uint",
    "long long": "long",
    "long long int": "long",
    "unsigned long long": "ulong",
    "unsigned long long int": "ulong",
    "float": "float",
    "double": "double",
    "int8_t": "sbyte",
    "uint8_t": "byte",
    "int16_t": "short",
    "uint16_t": "ushort",
    "int32_t": "int",
    "uint32_t": "uint",
    "int64_t": "long",
    "uint64_t": "ulong",
    "size_t": "nuint",
    "ssize_t": "nint",
    "ptrdiff_t": "nint",
    "intptr_t": "nint",
    "uintptr_t": "nuint",
    "wchar_t": "char",
    "char16_t": "char",
    "char32_t": "uint",
    # Pointer forms
    "void*": "nint",
    "const void*": "nint",
    "char*": "string",
    "const char*": "string",
    "wchar_t*": "string",
    "const wchar_t*": "string",
}

# Element types whose single-level pointer is treated as a C string
NARROW_CHAR_TYPES = {"char", "signed char", "unsigned char"}
WIDE_CHAR_TYPES = {"wchar_t", "char16_t"}

# Opaque native handle: an address-sized value with no structural access
OPAQUE_HANDLE_TYPE = "nint"

# Qualifiers and tag keywords removed when cleaning a type spelling
CV_QUALIFIERS = ("const", "volatile")
TAG_KEYWORDS = ("struct", "class", "enum", "union")

# C# keywords that might appear as identifiers
CSHARP_KEYWORDS = {
    'abstract', 'as', 'base', 'bool', 'break', 'byte', 'case', 'catch',
    'char', 'checked', 'class', 'const', 'continue', 'decimal', 'default',
    'delegate', 'do', 'double', 'else', 'enum', 'event', 'explicit', 'extern',
    'false', 'finally', 'fixed', 'float', 'for', 'foreach', 'goto', 'if',
    'implicit', 'in', 'int', 'interface', 'internal', 'is', 'lock', 'long',
    'namespace', 'new', 'null', 'object', 'operator', 'out', 'override',
    'params', 'private', 'protected', 'public', 'readonly', 'ref', 'return',
    'sbyte', 'sealed', 'short', 'sizeof', 'stackalloc', 'static', 'string',
    'struct', 'switch', 'this', 'throw', 'true', 'try', 'typeof', 'uint',
    'ulong', 'unchecked', 'unsafe', 'ushort', 'using', 'virtual', 'void',
    'volatile', 'while'
}

# C# usings required for generated code
REQUIRED_USINGS = [
    "using System;",
    "using System.Runtime.CompilerServices;",
    "using System.Runtime.InteropServices;",
    "using System.Runtime.InteropServices.Marshalling;",
]

# Default namespace for generated bindings
DEFAULT_NAMESPACE = "Bindings"

# Default class name for native methods
NATIVE_METHODS_CLASS = "NativeMethods"

# Class names for the other generated layers
MEMORY_HELPERS_CLASS = "MemoryHelpers"
CALLBACKS_CLASS = "Callbacks"
WRAPPERS_CLASS = "Wrappers"
EXTENSIONS_CLASS = "Extensions"

# Naming conventions
DELEGATE_SUFFIX = "Delegate"
RETURN_DELEGATE_SUFFIX = "ReturnDelegate"
WRAPPER_TYPE_SUFFIX = "Handle"
DESTROY_FUNCTION_SUFFIX = "_destroy"
CREATE_FUNCTION_SUFFIX = "_create"

# Members every owning wrapper declares; native methods with these names are not exposed
WRAPPER_MEMBER_NAMES = {
    "Handle", "IsReleased", "LiveHandle", "Create", "Dispose", "Release",
    "NativeCreate", "NativeDestroy",
}

DEFAULT_CALLING_CONVENTION = "Cdecl"

# Output sections in dependency order: (file name, order)
TYPES_FILE = ("Types.cs", 1)
BINDINGS_FILE = ("Bindings.cs", 2)
MEMORY_FILE = ("Memory.cs", 3)
DELEGATES_FILE = ("Delegates.cs", 4)
WRAPPERS_FILE = ("Wrappers.cs", 5)
EXTENSIONS_FILE = ("Extensions.cs", 6)

VISIBILITIES = ("public", "internal")
