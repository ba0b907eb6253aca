"""
Main layered bindings generator orchestration
"""

from dataclasses import dataclass
from pathlib import Path

from .callbacks import CallbackGenerator, identify_function_pointers
from .code_generators import CodeGenerator, OutputBuilder, binding_name
from .constants import (
    BINDINGS_FILE,
    DEFAULT_NAMESPACE,
    DELEGATES_FILE,
    EXTENSIONS_CLASS,
    EXTENSIONS_FILE,
    MEMORY_FILE,
    NATIVE_METHODS_CLASS,
    TYPES_FILE,
    VISIBILITIES,
    WRAPPERS_CLASS,
    WRAPPERS_FILE,
)
from .declarations import Class, DeclarationBuckets, Enum, flatten, struct_like_types
from .memory import MemoryHelperGenerator
from .type_mapper import TypeMapper


@dataclass(frozen=True)
class CodeSection:
    file_name: str
    content: str
    order: int


@dataclass(frozen=True)
class GeneratedCode:
    sections: tuple[CodeSection, ...] = ()

    def section(self, file_name: str) -> CodeSection:
        for section in self.sections:
            if section.file_name == file_name:
                return section
        raise KeyError(file_name)

    def as_dict(self) -> dict[str, str]:
        return {section.file_name: section.content for section in self.sections}

    def write(self, directory) -> list[Path]:
        """Write every section to directory in compile order"""
        output_path = Path(directory)
        output_path.mkdir(parents=True, exist_ok=True)
        written = []
        for section in sorted(self.sections, key=lambda s: s.order):
            path = output_path / section.file_name
            path.write_text(section.content)
            written.append(path)
        return written


def _merge_enums(enums) -> list[Enum]:
    """Merge enums sharing a name, keeping the first value for repeated members"""
    merged: dict[str, Enum] = {}
    for enum in enums:
        existing = merged.get(enum.name)
        if existing is None:
            merged[enum.name] = enum
            continue
        known = {name for name, _ in existing.values}
        extra = tuple(member for member in enum.values if member[0] not in known)
        merged[enum.name] = Enum(
            name=existing.name,
            values=existing.values + extra,
            documentation=existing.documentation or enum.documentation,
        )
    return list(merged.values())


def _first_by_name(decls) -> list:
    unique = {}
    for decl in decls:
        unique.setdefault(decl.name, decl)
    return list(unique.values())


class BindingGenerator:
    """Turns a declaration tree into ordered C# source sections

    Nested namespaces are flattened into one output namespace. When several
    declarations of the same kind share a name the first one in depth-first
    order is emitted; enums with the same name are merged instead.
    """

    def __init__(self, type_mapper: TypeMapper | None = None,
                 class_name: str = NATIVE_METHODS_CLASS, visibility: str = "public"):
        if visibility not in VISIBILITIES:
            raise ValueError(f"Invalid visibility value '{visibility}'. Must be 'public' or 'internal'.")
        self.type_mapper = type_mapper or TypeMapper()
        self.class_name = class_name
        self.visibility = visibility

    def generate(self, declarations, namespace: str = DEFAULT_NAMESPACE, library_name: str = "") -> GeneratedCode:
        """Generate all six sections for a declaration tree"""
        declarations = tuple(declarations)
        buckets = flatten(declarations)
        # Typedef names resolve to their targets, so each run gets its own mapper
        type_mapper = self.type_mapper.with_typedefs(buckets.typedefs)
        code_generator = CodeGenerator(library_name, type_mapper, self.class_name, self.visibility)

        contents = [
            (TYPES_FILE, self.generate_types(buckets, namespace, code_generator)),
            (BINDINGS_FILE, self.generate_bindings(buckets, namespace, code_generator)),
            (MEMORY_FILE, self.generate_memory(declarations, namespace)),
            (DELEGATES_FILE, self.generate_delegates(declarations, namespace, type_mapper)),
            (WRAPPERS_FILE, self.generate_wrappers(buckets, namespace, code_generator)),
            (EXTENSIONS_FILE, self.generate_extensions(namespace)),
        ]
        return GeneratedCode(sections=tuple(
            CodeSection(file_name=file_name, content=content, order=order)
            for (file_name, order), content in contents
        ))

    def generate_types(self, buckets: DeclarationBuckets, namespace: str, code_generator: CodeGenerator) -> str:
        """Section 1: enums, structs, class layouts and typedef aliases"""
        emitted = set()
        parts = []

        for enum in _merge_enums(buckets.enums):
            emitted.add(enum.name)
            parts.append(code_generator.generate_enum(enum))

        for struct in _first_by_name(buckets.structs):
            if struct.name in emitted:
                continue
            emitted.add(struct.name)
            parts.append(code_generator.generate_struct(struct))

        for cls in _first_by_name(buckets.classes):
            if cls.name in emitted:
                continue
            emitted.add(cls.name)
            parts.append(code_generator.generate_class(cls))

        # Aliases must sit at the top of the file, before the namespace
        global_usings = []
        for typedef in _first_by_name(buckets.typedefs):
            if typedef.name in emitted:
                continue
            emitted.add(typedef.name)
            alias = code_generator.generate_typedef(typedef, namespace)
            if alias:
                global_usings.append(alias)

        return OutputBuilder.build(namespace, parts, global_usings)

    def generate_bindings(self, buckets: DeclarationBuckets, namespace: str, code_generator: CodeGenerator) -> str:
        """Section 2: one LibraryImport per function and class method"""
        seen = set()
        functions = []
        for func in buckets.functions:
            name = binding_name(func)
            if name not in seen:
                seen.add(name)
                functions.append(code_generator.generate_function(func))
        for cls in buckets.classes:
            for method in cls.methods:
                name = binding_name(method, cls)
                if name not in seen:
                    seen.add(name)
                    functions.append(code_generator.generate_function(method, cls))

        parts = []
        if functions:
            parts.append(OutputBuilder.build_class(
                f"{self.visibility} static partial class {self.class_name}", functions
            ))
        return OutputBuilder.build(namespace, parts)

    def generate_memory(self, declarations, namespace: str) -> str:
        """Section 3: memory helpers for every struct-like type"""
        helpers = MemoryHelperGenerator(self.visibility)
        return OutputBuilder.build(namespace, helpers.generate_section_body(struct_like_types(declarations)))

    def generate_delegates(self, declarations, namespace: str, type_mapper: TypeMapper | None = None) -> str:
        """Section 4: delegates for function pointer types plus wrap/unwrap adapters"""
        callbacks = CallbackGenerator(type_mapper or self.type_mapper, self.visibility)
        return OutputBuilder.build(namespace, callbacks.generate_section_body(identify_function_pointers(declarations)))

    def generate_wrappers(self, buckets: DeclarationBuckets, namespace: str, code_generator: CodeGenerator) -> str:
        """Section 5: call-through functions and owning wrapper types"""
        parts = []

        wrappers = []
        seen = set()
        for func in buckets.functions:
            if func.name not in seen:
                seen.add(func.name)
                wrappers.append(code_generator.generate_wrapper_function(func))
        if wrappers:
            parts.append(OutputBuilder.build_class(f"{self.visibility} static class {WRAPPERS_CLASS}", wrappers))

        owned = set()
        for decl in list(buckets.structs) + list(buckets.classes):
            if decl.name in owned or (isinstance(decl, Class) and decl.is_abstract):
                continue
            owned.add(decl.name)
            parts.append(code_generator.generate_wrapper_class(decl))

        return OutputBuilder.build(namespace, parts)

    def generate_extensions(self, namespace: str) -> str:
        """Section 6: static convenience helpers, independent of the declarations"""
        body = f'''{self.visibility} static class {EXTENSIONS_CLASS}
{{
    /// <summary>
    /// Copies a string into a NUL-terminated UTF-8 native buffer.
    /// The caller owns the buffer and must release it with <see cref="FreeNativeUtf8"/>.
    /// </summary>
    public static nint ToNativeUtf8(this string value) => Marshal.StringToCoTaskMemUTF8(value);

    /// <summary>
    /// Copies a NUL-terminated UTF-8 native string into a managed string.
    /// </summary>
    public static string? FromNativeUtf8(this nint pointer) => Marshal.PtrToStringUTF8(pointer);

    /// <summary>
    /// Releases a buffer returned by <see cref="ToNativeUtf8"/>.
    /// </summary>
    public static void FreeNativeUtf8(nint pointer) => Marshal.FreeCoTaskMem(pointer);
}}
'''
        return OutputBuilder.build(namespace, [body])
