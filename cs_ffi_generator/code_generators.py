"""
Code generation functions for C# bindings
"""

from xml.sax.saxutils import escape

from .constants import (
    CREATE_FUNCTION_SUFFIX,
    DESTROY_FUNCTION_SUFFIX,
    NATIVE_METHODS_CLASS,
    PRIMITIVE_TYPE_MAP,
    REQUIRED_USINGS,
    WRAPPER_MEMBER_NAMES,
    WRAPPER_TYPE_SUFFIX,
)
from .declarations import Class, Enum, Function, Struct, Typedef
from .type_mapper import (
    MarshalHint,
    TypeMapper,
    escape_keyword,
    field_type,
    is_wide_string,
    marshal_attribute,
    native_return_type,
)

BUILTIN_TYPES = set(PRIMITIVE_TYPE_MAP.values())


def generate_doc_comment(documentation: str | None, indent: str = "", extra: list[str] | None = None) -> str:
    """Generate an XML documentation comment, empty when there is nothing to say"""
    lines = []
    if documentation:
        lines = [line.strip() for line in documentation.splitlines() if line.strip()]
    lines.extend(extra or [])
    if not lines:
        return ""
    body = "".join(f"{indent}/// {escape(line)}\n" for line in lines)
    return f"{indent}/// <summary>\n{body}{indent}/// </summary>\n"


def binding_name(func: Function, owner: Class | None = None) -> str:
    """Name of the raw binding for a function; methods use the flat {Class}_{method} export"""
    if owner is not None:
        return f"{owner.name}_{func.name}"
    return func.name


def destroy_function_name(type_name: str) -> str:
    return f"{type_name.lower()}{DESTROY_FUNCTION_SUFFIX}"


def create_function_name(type_name: str) -> str:
    return f"{type_name.lower()}{CREATE_FUNCTION_SUFFIX}"


def enum_underlying_type(values) -> str | None:
    """Smallest C# enum base that holds every value bit-exactly, None for int"""
    largest = max((value for _, value in values), default=0)
    if largest <= 0x7FFFFFFF:
        return None
    if largest <= 0xFFFFFFFF:
        return "uint"
    return "ulong"


class CodeGenerator:
    """Generates C# code from declaration model nodes"""

    def __init__(self, library_name: str, type_mapper: TypeMapper,
                 class_name: str = NATIVE_METHODS_CLASS, visibility: str = "public"):
        self.library_name = library_name
        self.type_mapper = type_mapper
        self.class_name = class_name
        self.visibility = visibility

    def _parameters(self, parameters, with_attributes: bool = True) -> tuple[list[str], list[str], bool]:
        """Build C# parameter declarations and argument names

        Returns (declarations, names, uses_narrow_strings).
        """
        decls = []
        names = []
        uses_strings = False
        for i, (name, param_type) in enumerate(parameters):
            mapping = self.type_mapper.map_type(param_type)
            # f(void) spelled as a parameter
            if mapping.target_name == "void" and not mapping.is_pointer:
                continue
            arg_name = escape_keyword(name or f"param{i}")
            if mapping.marshal_hint is MarshalHint.OWNED_STRING and not is_wide_string(mapping):
                uses_strings = True
            attribute = marshal_attribute(mapping) if with_attributes else ""
            if attribute:
                decls.append(f"{attribute} {mapping.target_name} {arg_name}")
            else:
                decls.append(f"{mapping.target_name} {arg_name}")
            names.append(arg_name)
        return decls, names, uses_strings

    def _library_import(self, entry_point: str, uses_strings: bool, indent: str = "    ") -> str:
        string_marshalling = ", StringMarshalling = StringMarshalling.Utf8" if uses_strings else ""
        return (
            f'{indent}[LibraryImport("{self.library_name}", EntryPoint = "{entry_point}"{string_marshalling})]\n'
            f"{indent}[UnmanagedCallConv(CallConvs = [typeof(CallConvCdecl)])]\n"
        )

    def generate_function(self, func: Function, owner: Class | None = None) -> str:
        """Generate C# LibraryImport for a function or class method"""
        name = binding_name(func, owner)
        return_mapping = self.type_mapper.map_type(func.return_type)
        result_type = native_return_type(return_mapping)

        params, _, uses_strings = self._parameters(func.parameters)
        if owner is not None and not func.is_static:
            params.insert(0, "nint self")

        extra = []
        if return_mapping.marshal_hint is MarshalHint.OWNED_STRING:
            extra.append("Returns a native string pointer; copy it before the native side invalidates it.")
        if func.is_virtual:
            extra.append(f"Virtual method of {owner.name if owner else 'its class'}; binds the exported symbol, not the vtable slot.")

        # Add return value marshalling attribute for bool
        return_marshal = ""
        if result_type == "bool":
            return_marshal = "    [return: MarshalAs(UnmanagedType.I1)]\n"

        return (
            f"{generate_doc_comment(func.documentation, '    ', extra)}"
            f"{self._library_import(name, uses_strings)}"
            f"{return_marshal}"
            f"    public static partial {result_type} {escape_keyword(name)}({', '.join(params)});\n"
        )

    def _layout_fields(self, name: str, mapping) -> list[str]:
        # Fixed arrays are expanded into name_0, name_1, ... to keep the layout unmanaged
        if mapping.marshal_hint is MarshalHint.FIXED_ARRAY:
            element = self.type_mapper.map_type(mapping.element_name)
            lines = []
            for i in range(mapping.array_length):
                lines.extend(self._layout_fields(f"{name}_{i}", element))
            return lines
        return [f"    public {field_type(mapping)} {escape_keyword(name)};"]

    def _generate_layout(self, name: str, fields, documentation: str | None, extra: list[str] | None = None) -> str:
        lines = []
        for i, (field_name, c_type) in enumerate(fields):
            mapping = self.type_mapper.map_type(c_type)
            if mapping.target_name == "void" and not mapping.is_pointer:
                continue
            lines.extend(self._layout_fields(field_name or f"field{i}", mapping))

        body = "\n".join(lines)
        if body:
            body += "\n"
        return (
            f"{generate_doc_comment(documentation, extra=extra)}"
            "[StructLayout(LayoutKind.Sequential)]\n"
            f"{self.visibility} struct {name}\n"
            "{\n"
            f"{body}"
            "}\n"
        )

    def generate_struct(self, struct: Struct) -> str:
        """Generate C# struct"""
        return self._generate_layout(struct.name, struct.fields, struct.documentation)

    def generate_class(self, cls: Class) -> str:
        """Generate the field layout of a native class"""
        extra = []
        if cls.methods:
            extra.append(f"Methods are bound in {self.class_name} as {cls.name}_*.")
        if cls.is_abstract:
            extra.append("Abstract native class; no owning wrapper is generated.")
        return self._generate_layout(cls.name, cls.fields, cls.documentation, extra)

    def generate_enum(self, enum: Enum) -> str:
        """Generate C# enum with the exact unsigned values"""
        underlying_type = enum_underlying_type(enum.values)
        inheritance_clause = f" : {underlying_type}" if underlying_type else ""
        flags_attribute = "[Flags]\n" if self.type_mapper.is_flag_enum(enum.name) else ""

        values_str = "".join(f"    {escape_keyword(name)} = {value},\n" for name, value in enum.values)

        return (
            f"{generate_doc_comment(enum.documentation)}"
            f"{flags_attribute}"
            f"{self.visibility} enum {enum.name}{inheritance_clause}\n"
            "{\n"
            f"{values_str}"
            "}\n"
        )

    def generate_typedef(self, typedef: Typedef, namespace: str) -> str:
        """Generate a global using alias, empty when the alias would be meaningless"""
        mapping = self.type_mapper.map_type(typedef.underlying_type)
        target = mapping.target_name
        # typedef struct Foo Foo;
        if target == typedef.name or target == "void":
            return ""

        base = target.split("[", 1)[0]
        if base not in BUILTIN_TYPES:
            target = f"global::{namespace}.{target}"

        comment = ""
        if typedef.documentation:
            comment = "".join(f"// {line.strip()}\n" for line in typedef.documentation.splitlines() if line.strip())
        return f"{comment}global using {typedef.name} = {target};"

    def _call_through(self, call: str, return_mapping) -> tuple[str, str]:
        """Managed return type and expression for a call to a raw binding"""
        if return_mapping.marshal_hint is MarshalHint.OWNED_STRING:
            reader = "PtrToStringUni" if is_wide_string(return_mapping) else "PtrToStringUTF8"
            return "string?", f"Marshal.{reader}({call})"
        return return_mapping.target_name, call

    def generate_wrapper_function(self, func: Function) -> str:
        """Generate an idiomatic call-through for a free function"""
        return_mapping = self.type_mapper.map_type(func.return_type)
        params, names, _ = self._parameters(func.parameters, with_attributes=False)
        call = f"{self.class_name}.{escape_keyword(binding_name(func))}({', '.join(names)})"
        return_type, body = self._call_through(call, return_mapping)

        return (
            f"{generate_doc_comment(func.documentation, '    ')}"
            f"    public static {return_type} {escape_keyword(func.name)}({', '.join(params)}) => {body};\n"
        )

    def _generate_wrapper_method(self, method: Function, owner: Class) -> str:
        return_mapping = self.type_mapper.map_type(method.return_type)
        params, names, _ = self._parameters(method.parameters, with_attributes=False)
        if not method.is_static:
            names.insert(0, "LiveHandle")
        call = f"{self.class_name}.{escape_keyword(binding_name(method, owner))}({', '.join(names)})"
        return_type, body = self._call_through(call, return_mapping)
        static = "static " if method.is_static else ""

        return (
            f"{generate_doc_comment(method.documentation, '    ')}"
            f"    public {static}{return_type} {escape_keyword(method.name)}({', '.join(params)}) => {body};\n"
        )

    @staticmethod
    def wrapped_methods(cls: Class) -> list[Function]:
        """Methods exposed on the owning wrapper

        Constructors and destructors are left out, as are names the wrapper
        itself declares.
        """
        methods = []
        for method in cls.methods:
            lowered = method.name.lower()
            if cls.name in method.name or "create" in lowered or "destroy" in lowered:
                continue
            if method.name in WRAPPER_MEMBER_NAMES:
                continue
            methods.append(method)
        return methods

    def generate_wrapper_class(self, decl: Struct | Class) -> str:
        """Generate an owning wrapper type with a release operation"""
        type_name = decl.name
        wrapper_name = f"{type_name}{WRAPPER_TYPE_SUFFIX}"
        destroy_name = destroy_function_name(type_name)
        create_name = create_function_name(type_name)
        kind = "class" if isinstance(decl, Class) else "struct"

        methods = self.wrapped_methods(decl) if isinstance(decl, Class) else []
        method_code = [self._generate_wrapper_method(m, decl) for m in methods]

        live_handle = ""
        if any(not m.is_static for m in methods):
            live_handle = f'''    private nint LiveHandle
    {{
        get
        {{
            ObjectDisposedException.ThrowIf(Handle == 0, this);
            return Handle;
        }}
    }}

'''

        doc = generate_doc_comment(decl.documentation, extra=[
            f"Owning wrapper for a native {type_name} {kind}.",
            f"Create() allocates one through {create_name}; disposing releases it through {destroy_name}.",
        ])

        code = f'''{doc}{self.visibility} sealed partial class {wrapper_name} : IDisposable
{{
    public {wrapper_name}(nint handle)
    {{
        Handle = handle;
    }}

    /// <summary>
    /// Creates a new native {type_name} and takes ownership of it.
    /// </summary>
    public static {wrapper_name} Create() => new {wrapper_name}(NativeCreate());

    /// <summary>
    /// The raw handle to the native {type_name}.
    /// </summary>
    public nint Handle {{ get; private set; }}

    public bool IsReleased => Handle == 0;

{live_handle}    public void Dispose()
    {{
        Release();
        GC.SuppressFinalize(this);
    }}

    ~{wrapper_name}()
    {{
        Release();
    }}

    private void Release()
    {{
        if (Handle != 0)
        {{
            NativeDestroy(Handle);
            Handle = 0;
        }}
    }}

{self._library_import(create_name, False)}    private static partial nint NativeCreate();

{self._library_import(destroy_name, False)}    private static partial void NativeDestroy(nint handle);
'''
        if method_code:
            code += "\n" + "\n".join(method_code)
        return code + "}\n"


class OutputBuilder:
    """Builds one C# output file"""

    @staticmethod
    def build(namespace: str, parts: list[str], global_usings: list[str] | None = None) -> str:
        """Build the final C# output"""
        lines = ["// <auto-generated />", "#nullable enable", ""]

        if global_usings:
            lines.extend(global_usings)
            lines.append("")

        # Usings
        lines.extend(REQUIRED_USINGS)
        lines.append("")

        # Namespace
        lines.append(f"namespace {namespace};")
        lines.append("")

        for part in parts:
            lines.append(part)

        return "\n".join(lines).rstrip("\n") + "\n"

    @staticmethod
    def build_class(declaration: str, members: list[str]) -> str:
        """Wrap members in a class body"""
        return f"{declaration}\n{{\n" + "\n".join(members) + "}\n"
