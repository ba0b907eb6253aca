"""
Delegate types and adapters for native function pointers
"""

import re
from dataclasses import dataclass

from .constants import (
    CALLBACKS_CLASS,
    DEFAULT_CALLING_CONVENTION,
    DELEGATE_SUFFIX,
    RETURN_DELEGATE_SUFFIX,
)
from .declarations import Class, Function, Namespace, Struct, check_declaration
from .type_mapper import MarshalHint, TypeMapper, marshal_attribute, native_return_type

# return_type (*)(param1, param2, ...) -- the whole spelling must match
FUNCTION_POINTER_PATTERN = re.compile(
    r"^\s*(?P<return_type>[\w\s\*]+?)\s*\(\s*\*\s*\)\s*\((?P<parameters>[\w\s\*,]*)\)\s*$"
)


@dataclass(frozen=True)
class FunctionPointerSignature:
    return_type: str
    parameter_types: tuple[str, ...] = ()
    calling_convention: str = DEFAULT_CALLING_CONVENTION


@dataclass(frozen=True)
class DelegateTypeDefinition:
    name: str
    signature: FunctionPointerSignature
    documentation: str | None = None


def extract_function_pointer_signature(type_string: str) -> FunctionPointerSignature | None:
    """Parse a function pointer spelling, None if it is not exactly that shape"""
    match = FUNCTION_POINTER_PATTERN.match(type_string)
    if not match:
        return None

    return_type = " ".join(match.group("return_type").split())
    params_str = match.group("parameters").strip()
    param_types = []
    if params_str:
        param_types = [" ".join(p.split()) for p in params_str.split(",")]
        # An empty slot means the spelling was mangled, e.g. "(int,)"
        if any(not p for p in param_types):
            return None
        if param_types == ["void"]:
            param_types = []

    return FunctionPointerSignature(return_type=return_type, parameter_types=tuple(param_types))


def identify_function_pointers(declarations) -> list[DelegateTypeDefinition]:
    """Collect one delegate definition per synthesized name, first-seen order

    Names come from the owning declaration and the member holding the pointer.
    Two different signatures that produce the same name collapse into the
    first one found.
    """
    found: dict[str, DelegateTypeDefinition] = {}
    _collect(declarations, found)
    return list(found.values())


def _register(found: dict, name: str, type_string: str, documentation: str):
    signature = extract_function_pointer_signature(type_string)
    if signature is not None and name not in found:
        found[name] = DelegateTypeDefinition(name=name, signature=signature, documentation=documentation)


def _collect_function(func: Function, found: dict):
    for param_name, param_type in func.parameters:
        _register(
            found,
            f"{func.name}_{param_name}{DELEGATE_SUFFIX}",
            param_type,
            f"Callback passed as parameter '{param_name}' of {func.name}.",
        )
    _register(
        found,
        f"{func.name}{RETURN_DELEGATE_SUFFIX}",
        func.return_type,
        f"Callback returned by {func.name}.",
    )


def _collect_fields(owner: str, fields, found: dict):
    for field_name, field_type in fields:
        _register(
            found,
            f"{owner}_{field_name}{DELEGATE_SUFFIX}",
            field_type,
            f"Callback stored in field '{field_name}' of {owner}.",
        )


def _collect(declarations, found: dict):
    for decl in declarations:
        check_declaration(decl)
        if isinstance(decl, Function):
            _collect_function(decl, found)
        elif isinstance(decl, Struct):
            _collect_fields(decl.name, decl.fields, found)
        elif isinstance(decl, Class):
            for method in decl.methods:
                _collect_function(method, found)
            _collect_fields(decl.name, decl.fields, found)
        elif isinstance(decl, Namespace):
            _collect(decl.declarations, found)


class CallbackGenerator:
    """Generates C# delegate declarations and their wrap/unwrap adapters"""

    def __init__(self, type_mapper: TypeMapper, visibility: str = "public"):
        self.type_mapper = type_mapper
        self.visibility = visibility

    def generate_delegate_type(self, definition: DelegateTypeDefinition) -> str:
        """Generate the delegate type for a function pointer signature"""
        signature = definition.signature

        params = []
        for i, param_type in enumerate(signature.parameter_types):
            mapping = self.type_mapper.map_type(param_type)
            attribute = marshal_attribute(mapping)
            if mapping.marshal_hint is MarshalHint.OWNED_STRING and not attribute:
                # Delegates default to ANSI strings, be explicit
                attribute = "[MarshalAs(UnmanagedType.LPUTF8Str)]"
            prefix = f"{attribute} " if attribute else ""
            params.append(f"{prefix}{mapping.target_name} arg{i}")

        return_mapping = self.type_mapper.map_type(signature.return_type)
        return_type = native_return_type(return_mapping)

        lines = []
        if definition.documentation:
            lines.append("/// <summary>")
            lines.append(f"/// {definition.documentation}")
            lines.append("/// </summary>")
            lines.append("/// <remarks>Keep the delegate instance reachable for as long as native code may call it.</remarks>")
        lines.append(f"[UnmanagedFunctionPointer(CallingConvention.{signature.calling_convention})]")
        if return_type == "bool":
            lines.append("[return: MarshalAs(UnmanagedType.I1)]")
        lines.append(f"{self.visibility} delegate {return_type} {definition.name}({', '.join(params)});")
        return "\n".join(lines) + "\n"

    @staticmethod
    def generate_wrapper(definition: DelegateTypeDefinition) -> str:
        """Generate a function turning a managed delegate into a native function pointer"""
        name = definition.name
        return (
            f"    /// <summary>Converts a {name} into a function pointer native code can call.</summary>\n"
            f"    public static nint Wrap{name}({name} callback) => Marshal.GetFunctionPointerForDelegate(callback);\n"
        )

    @staticmethod
    def generate_unwrapper(definition: DelegateTypeDefinition) -> str:
        """Generate a function turning a native function pointer into a managed delegate"""
        name = definition.name
        return (
            f"    /// <summary>Converts a native function pointer into a callable {name}.</summary>\n"
            f"    public static {name} Unwrap{name}(nint pointer) => Marshal.GetDelegateForFunctionPointer<{name}>(pointer);\n"
        )

    def generate_section_body(self, definitions: list[DelegateTypeDefinition]) -> list[str]:
        """Delegate types followed by the static adapter class"""
        parts = [self.generate_delegate_type(d) for d in definitions]
        if definitions:
            adapters = []
            for definition in definitions:
                adapters.append(self.generate_wrapper(definition))
                adapters.append(self.generate_unwrapper(definition))
            parts.append(
                f"{self.visibility} static class {CALLBACKS_CLASS}\n{{\n" + "\n".join(adapters) + "}\n"
            )
        return parts
