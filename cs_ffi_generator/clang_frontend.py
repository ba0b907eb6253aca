"""
libclang frontend: builds the declaration model from C/C++ headers
"""

import subprocess
import sys
from pathlib import Path

import clang.cindex
from clang.cindex import AccessSpecifier, CursorKind, TypeKind

from .declarations import Class, Enum, Function, Namespace, Struct, Typedef

# Kinds that only wrap other declarations (extern "C" blocks)
TRANSPARENT_KINDS = {CursorKind.UNEXPOSED_DECL}
if hasattr(CursorKind, "LINKAGE_SPEC"):
    TRANSPARENT_KINDS.add(CursorKind.LINKAGE_SPEC)

RECORD_KINDS = (CursorKind.STRUCT_DECL, CursorKind.CLASS_DECL)
HIDDEN_ACCESS = (AccessSpecifier.PRIVATE, AccessSpecifier.PROTECTED)


def _is_anonymous(cursor) -> bool:
    spelling = cursor.spelling or ""
    return not spelling or "unnamed" in spelling or "anonymous" in spelling or "(" in spelling


def _documentation(cursor) -> str | None:
    comment = getattr(cursor, "brief_comment", None)
    if isinstance(comment, str) and comment.strip():
        return comment.strip()
    return None


class DeclarationBuilder:
    """Converts libclang cursors into Declaration nodes

    Args:
        allowed_files: absolute paths whose top-level declarations are kept;
            None keeps everything
    """

    def __init__(self, allowed_files: set[str] | None = None):
        self.allowed_files = allowed_files
        self.anonymous_enum_counter = 0

    def _is_allowed(self, cursor) -> bool:
        if self.allowed_files is None:
            return True
        location_file = cursor.location.file
        # Compiler builtins such as __builtin_va_list have no file
        if not location_file:
            return False
        return str(Path(location_file.name).resolve()) in self.allowed_files

    def build(self, cursor) -> list:
        """Convert the children of cursor (usually a translation unit)"""
        return self._build_children(list(cursor.get_children()), check_location=True)

    def _build_children(self, children, check_location: bool = False) -> list:
        declarations = []
        for i, child in enumerate(children):
            if check_location and not self._is_allowed(child):
                continue

            if child.kind in TRANSPARENT_KINDS:
                declarations.extend(self._build_children(list(child.get_children())))
                continue

            if child.kind in RECORD_KINDS + (CursorKind.ENUM_DECL,) and _is_anonymous(child):
                # typedef struct { ... } Name; is handled by the typedef that follows
                next_sibling = children[i + 1] if i + 1 < len(children) else None
                if next_sibling is not None and next_sibling.kind == CursorKind.TYPEDEF_DECL:
                    continue
                if child.kind == CursorKind.ENUM_DECL and child.is_definition():
                    self.anonymous_enum_counter += 1
                    declarations.append(self.convert_enum(child, f"AnonymousEnum{self.anonymous_enum_counter}"))
                continue

            decl = self.convert(child)
            if decl is not None:
                declarations.append(decl)
        return declarations

    def convert(self, cursor):
        """Convert one cursor, None when it has no counterpart in the model"""
        if cursor.kind == CursorKind.FUNCTION_DECL:
            return self.convert_function(cursor)
        if cursor.kind in RECORD_KINDS:
            if not cursor.is_definition():
                return None
            return self.convert_record(cursor, cursor.spelling)
        if cursor.kind == CursorKind.ENUM_DECL:
            if not cursor.is_definition():
                return None
            return self.convert_enum(cursor, cursor.spelling)
        if cursor.kind == CursorKind.TYPEDEF_DECL:
            return self.convert_typedef(cursor)
        if cursor.kind == CursorKind.NAMESPACE:
            return Namespace(name=cursor.spelling, declarations=self._build_children(list(cursor.get_children())))
        return None

    def convert_function(self, cursor) -> Function | None:
        # Skip variadic functions (not supported in LibraryImport)
        if cursor.type.kind == TypeKind.FUNCTIONPROTO and cursor.type.is_function_variadic():
            return None
        is_method = cursor.kind == CursorKind.CXX_METHOD
        return Function(
            name=cursor.spelling,
            return_type=cursor.result_type.spelling,
            parameters=[(arg.spelling, arg.type.spelling) for arg in cursor.get_arguments()],
            documentation=_documentation(cursor),
            is_virtual=bool(is_method and cursor.is_virtual_method()),
            is_static=bool(is_method and cursor.is_static_method()),
        )

    def convert_record(self, cursor, name: str) -> Struct | Class:
        fields = []
        methods = []
        for child in cursor.get_children():
            if child.kind == CursorKind.FIELD_DECL:
                if child.access_specifier in HIDDEN_ACCESS:
                    continue
                field_type = child.type.spelling
                # Skip fields with anonymous struct/union types
                if not child.spelling or "unnamed" in field_type or "(anonymous" in field_type:
                    continue
                fields.append((child.spelling, field_type))
            elif child.kind == CursorKind.CXX_METHOD:
                if child.access_specifier in HIDDEN_ACCESS:
                    continue
                method = self.convert_function(child)
                if method is not None:
                    methods.append(method)

        if cursor.kind == CursorKind.CLASS_DECL or methods:
            return Class(
                name=name,
                methods=methods,
                fields=fields,
                documentation=_documentation(cursor),
                is_abstract=bool(cursor.is_abstract_record()),
            )
        return Struct(name=name, fields=fields, documentation=_documentation(cursor))

    def convert_enum(self, cursor, name: str) -> Enum:
        values = [
            (child.spelling, child.enum_value)
            for child in cursor.get_children()
            if child.kind == CursorKind.ENUM_CONSTANT_DECL
        ]
        return Enum(name=name, values=values, documentation=_documentation(cursor))

    def convert_typedef(self, cursor):
        type_name = cursor.spelling
        for child in cursor.get_children():
            if child.kind in RECORD_KINDS + (CursorKind.ENUM_DECL,) and child.is_definition():
                if _is_anonymous(child):
                    # typedef struct { ... } Name;
                    if child.kind == CursorKind.ENUM_DECL:
                        return self.convert_enum(child, type_name)
                    return self.convert_record(child, type_name)
                if child.spelling == type_name:
                    # typedef struct Name { ... } Name; the record is emitted on its own
                    return None
        return Typedef(
            name=type_name,
            underlying_type=cursor.underlying_typedef_type.spelling,
            documentation=_documentation(cursor),
        )


def build_file_depth_map(tu, root_file: str, max_depth: int | None) -> dict[str, int]:
    """Build a mapping of file paths to their include depth

    Args:
        tu: Translation unit
        root_file: Root header file path
        max_depth: Maximum include depth to process (None for infinite)
    """
    file_depth = {str(Path(root_file).resolve()): 0}

    if max_depth == 0:
        return file_depth

    effective_max_depth = float('inf') if max_depth is None else max_depth

    inclusions = []
    for include in tu.get_includes():
        if include.source and include.include:
            inclusions.append((
                str(Path(include.source.name).resolve()),
                str(Path(include.include.name).resolve()),
            ))

    # Build depth map by processing inclusions level by level
    current_depth = 0
    while current_depth < effective_max_depth:
        files_at_depth = {f for f, d in file_depth.items() if d == current_depth}
        if not files_at_depth:
            break

        for source_path, included_path in inclusions:
            if source_path in files_at_depth:
                new_depth = current_depth + 1
                if included_path not in file_depth or file_depth[included_path] > new_depth:
                    file_depth[included_path] = new_depth

        current_depth += 1

    return file_depth


def system_include_dirs() -> list[str]:
    """Ask the clang driver for its system include paths, best effort"""
    try:
        result = subprocess.run(
            ['clang', '-E', '-v', '-'],
            input=b'',
            capture_output=True,
            timeout=2
        )
    except (OSError, subprocess.SubprocessError):
        return ['/usr/local/include', '/usr/include']

    stderr = result.stderr.decode('utf-8', errors='ignore')
    paths = []
    in_includes = False
    for line in stderr.split('\n'):
        if '#include <...> search starts here:' in line:
            in_includes = True
            continue
        if in_includes:
            if line.startswith('End of search list'):
                break
            path = line.strip()
            if path and path.startswith('/'):
                paths.append(path)
    return paths


class HeaderParser:
    """Parses headers with libclang and returns declaration trees"""

    def __init__(self, include_dirs: list[str] | None = None, include_depth: int | None = None,
                 language: str = "c", extra_args: list[str] | None = None):
        self.include_dirs = include_dirs or []
        self.include_depth = include_depth
        self.language = language
        self.extra_args = extra_args or []

    def clang_args(self) -> list[str]:
        args = ['-x', self.language]
        for include_dir in self.include_dirs:
            args.append(f'-I{include_dir}')
        for path in system_include_dirs():
            args.append(f'-I{path}')
        args.extend(self.extra_args)
        return args

    def parse(self, header_file: str) -> list:
        """Parse one header into a list of top-level declarations"""
        if not Path(header_file).exists():
            raise FileNotFoundError(f"Header file not found: {header_file}")

        index = clang.cindex.Index.create()
        options = (clang.cindex.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD
                   | clang.cindex.TranslationUnit.PARSE_SKIP_FUNCTION_BODIES)
        tu = index.parse(header_file, args=self.clang_args(), options=options)

        # Check for parse errors (warnings don't stop processing)
        error_messages = []
        has_fatal_errors = False
        for diag in tu.diagnostics:
            if diag.severity >= clang.cindex.Diagnostic.Error:
                print(f"Error in {header_file}: {diag.spelling}", file=sys.stderr)
                error_messages.append(diag.spelling)
            if diag.severity >= clang.cindex.Diagnostic.Fatal:
                has_fatal_errors = True

        if has_fatal_errors:
            raise RuntimeError(
                f"Fatal parsing errors in {header_file}. Errors: {'; '.join(error_messages)}. "
                "Check include directories and header file accessibility."
            )

        file_depth_map = build_file_depth_map(tu, header_file, self.include_depth)
        builder = DeclarationBuilder(set(file_depth_map))
        return builder.build(tu.cursor)

    def parse_all(self, header_files: list[str], ignore_missing: bool = False) -> list:
        """Parse several headers into one declaration list, in header order"""
        declarations = []
        for header_file in header_files:
            if not Path(header_file).exists() and ignore_missing:
                print(f"Warning: Header file not found: {header_file}", file=sys.stderr)
                continue
            print(f"Processing: {header_file}")
            declarations.extend(self.parse(header_file))
        return declarations
