"""
Unit tests for CodeGenerator and OutputBuilder
"""

import pytest

from cs_ffi_generator.code_generators import (
    CodeGenerator,
    OutputBuilder,
    binding_name,
    create_function_name,
    destroy_function_name,
    enum_underlying_type,
    generate_doc_comment,
)
from cs_ffi_generator.declarations import Class, Enum, Function, Struct, Typedef
from cs_ffi_generator.type_mapper import TypeMapper


class TestHelpers:
    """Test module level naming helpers"""

    def test_doc_comment(self):
        assert generate_doc_comment("Adds numbers") == "/// <summary>\n/// Adds numbers\n/// </summary>\n"

    def test_doc_comment_is_escaped(self):
        assert "/// a &lt; b &amp;&amp; c" in generate_doc_comment("a < b && c")

    def test_doc_comment_empty(self):
        assert generate_doc_comment(None) == ""
        assert generate_doc_comment("   ") == ""

    def test_doc_comment_extra_lines(self):
        result = generate_doc_comment(None, "    ", ["Extra note."])
        assert result == "    /// <summary>\n    /// Extra note.\n    /// </summary>\n"

    def test_binding_name(self):
        method = Function(name="draw")
        assert binding_name(method) == "draw"
        assert binding_name(method, Class(name="Widget")) == "Widget_draw"

    def test_lifecycle_function_names(self):
        assert destroy_function_name("Widget") == "widget_destroy"
        assert create_function_name("Widget") == "widget_create"

    @pytest.mark.parametrize("values,expected", [
        ([], None),
        ([("A", 1), ("B", 0x7FFFFFFF)], None),
        ([("HIGH", 0x80000000)], "uint"),
        ([("ALL", 0xFFFFFFFF)], "uint"),
        ([("BIG", 0x100000000)], "ulong"),
    ])
    def test_enum_underlying_type(self, values, expected):
        assert enum_underlying_type(values) == expected


class TestCodeGenerator:
    """Test the CodeGenerator class"""

    def setup_method(self):
        """Set up test fixtures"""
        self.type_mapper = TypeMapper()
        self.generator = CodeGenerator("mylib", self.type_mapper)

    def test_generate_simple_function(self):
        """Test generating a simple function with no parameters"""
        result = self.generator.generate_function(Function(name="get_version", return_type="int"))

        assert '[LibraryImport("mylib", EntryPoint = "get_version")]' in result
        assert "[UnmanagedCallConv(CallConvs = [typeof(CallConvCdecl)])]" in result
        assert "public static partial int get_version();" in result

    def test_generate_function_with_parameters(self):
        """Test generating a function with parameters and documentation"""
        func = Function(name="add", return_type="int", parameters=[("a", "int"), ("b", "int")],
                        documentation="Adds two integers")
        result = self.generator.generate_function(func)

        assert "    /// Adds two integers\n" in result
        assert "public static partial int add(int a, int b);" in result

    def test_generate_function_with_string_parameter(self):
        result = self.generator.generate_function(
            Function(name="set_name", parameters=[("name", "const char*")])
        )
        assert 'EntryPoint = "set_name", StringMarshalling = StringMarshalling.Utf8)]' in result
        assert "public static partial void set_name(string name);" in result

    def test_string_return_is_raw_pointer(self):
        result = self.generator.generate_function(Function(name="get_name", return_type="const char*"))
        assert "public static partial nint get_name();" in result
        assert "copy it before the native side invalidates it" in result

    def test_bool_return_marshalling(self):
        result = self.generator.generate_function(Function(name="is_ready", return_type="bool"))
        assert "[return: MarshalAs(UnmanagedType.I1)]" in result
        assert "public static partial bool is_ready();" in result

    def test_void_parameter_is_skipped(self):
        result = self.generator.generate_function(Function(name="init", parameters=[("", "void")]))
        assert "public static partial void init();" in result

    def test_unnamed_and_keyword_parameters(self):
        func = Function(name="f", parameters=[("", "int"), ("object", "double")])
        result = self.generator.generate_function(func)
        assert "public static partial void f(int param0, double @object);" in result

    def test_instance_method(self):
        owner = Class(name="Counter")
        method = Function(name="increment", return_type="int", parameters=[("step", "int")])
        result = self.generator.generate_function(method, owner)

        assert 'EntryPoint = "Counter_increment"' in result
        assert "public static partial int Counter_increment(nint self, int step);" in result

    def test_static_method(self):
        owner = Class(name="Counter")
        method = Function(name="instances", return_type="int", is_static=True)
        result = self.generator.generate_function(method, owner)
        assert "public static partial int Counter_instances();" in result

    def test_virtual_method_note(self):
        owner = Class(name="Shape")
        result = self.generator.generate_function(Function(name="area", return_type="double", is_virtual=True), owner)
        assert "Virtual method of Shape" in result

    def test_generate_struct(self):
        struct = Struct(name="Point", fields=[("x", "int"), ("y", "int")], documentation="A 2D point")
        result = self.generator.generate_struct(struct)

        assert result == (
            "/// <summary>\n"
            "/// A 2D point\n"
            "/// </summary>\n"
            "[StructLayout(LayoutKind.Sequential)]\n"
            "public struct Point\n"
            "{\n"
            "    public int x;\n"
            "    public int y;\n"
            "}\n"
        )

    def test_struct_fields_stay_unmanaged(self):
        struct = Struct(name="Record", fields=[("name", "const char*"), ("matrix", "float[3]"), ("ok", "bool")])
        result = self.generator.generate_struct(struct)

        assert "MarshalAs" not in result
        assert "public nint name;" in result
        assert "    public float matrix_0;\n    public float matrix_1;\n    public float matrix_2;\n" in result
        assert "float[]" not in result
        assert "public byte ok;" in result

    def test_nested_fixed_array_is_expanded(self):
        result = self.generator.generate_struct(Struct(name="Grid", fields=[("cells", "int[2][2]")]))
        for name in ["cells_0_0", "cells_0_1", "cells_1_0", "cells_1_1"]:
            assert f"public int {name};" in result

    def test_fixed_array_of_strings(self):
        result = self.generator.generate_struct(Struct(name="Names", fields=[("items", "const char*[2]")]))
        assert "public nint items_0;" in result
        assert "public nint items_1;" in result

    def test_self_referential_struct(self):
        struct = Struct(name="Node", fields=[("next", "Node*"), ("value", "int32_t")])
        result = self.generator.generate_struct(struct)
        assert "public nint next;" in result
        assert "public int value;" in result

    def test_empty_struct(self):
        result = self.generator.generate_struct(Struct(name="Opaque"))
        assert "public struct Opaque\n{\n}\n" in result

    def test_generate_class_layout(self):
        cls = Class(name="Counter", methods=[Function(name="increment")], fields=[("count", "int")])
        result = self.generator.generate_class(cls)
        assert "public struct Counter" in result
        assert "public int count;" in result
        assert "Methods are bound in NativeMethods as Counter_*." in result

    def test_generate_enum(self):
        enum = Enum(name="Status", values=[("OK", 0), ("ERROR", 1)])
        result = self.generator.generate_enum(enum)
        assert result == "public enum Status\n{\n    OK = 0,\n    ERROR = 1,\n}\n"

    def test_generate_enum_large_values(self):
        result = self.generator.generate_enum(Enum(name="Mask", values=[("ALL", 0xFFFFFFFFFFFFFFFF)]))
        assert "public enum Mask : ulong" in result
        assert "ALL = 18446744073709551615," in result

    def test_generate_flag_enum(self):
        self.type_mapper.add_flag_enum("Permissions")
        result = self.generator.generate_enum(Enum(name="Permissions", values=[("READ", 1), ("WRITE", 2)]))
        assert result.startswith("[Flags]\npublic enum Permissions")

    def test_generate_typedef(self):
        result = self.generator.generate_typedef(Typedef(name="Handle", underlying_type="void*"), "MyNs")
        assert result == "global using Handle = nint;"

    def test_typedef_to_user_type_is_qualified(self):
        result = self.generator.generate_typedef(Typedef(name="PointAlias", underlying_type="struct Point"), "MyNs")
        assert result == "global using PointAlias = global::MyNs.Point;"

    def test_meaningless_typedefs_are_skipped(self):
        assert self.generator.generate_typedef(Typedef(name="Foo", underlying_type="struct Foo"), "MyNs") == ""
        assert self.generator.generate_typedef(Typedef(name="Nothing", underlying_type="void"), "MyNs") == ""

    def test_wrapper_function(self):
        func = Function(name="add", return_type="int", parameters=[("a", "int"), ("b", "int")])
        result = self.generator.generate_wrapper_function(func)
        assert "    public static int add(int a, int b) => NativeMethods.add(a, b);\n" in result

    def test_wrapper_function_copies_strings(self):
        result = self.generator.generate_wrapper_function(Function(name="get_name", return_type="const char*"))
        assert "public static string? get_name() => Marshal.PtrToStringUTF8(NativeMethods.get_name());" in result

    def test_wrapper_function_wide_string(self):
        result = self.generator.generate_wrapper_function(Function(name="title", return_type="const wchar_t*"))
        assert "Marshal.PtrToStringUni(NativeMethods.title())" in result

    def test_wrapped_methods_skip_wrapper_member_names(self):
        cls = Class(name="Stream", methods=[
            Function(name="Dispose"),
            Function(name="Release"),
            Function(name="Handle", return_type="nint"),
            Function(name="IsReleased", return_type="bool"),
            Function(name="read", return_type="int"),
        ])
        assert [m.name for m in CodeGenerator.wrapped_methods(cls)] == ["read"]

    def test_wrapped_methods_skip_lifecycle(self):
        cls = Class(name="Counter", methods=[
            Function(name="increment"),
            Function(name="counter_create"),
            Function(name="Destroy"),
            Function(name="CounterReset"),
        ])
        assert [m.name for m in CodeGenerator.wrapped_methods(cls)] == ["increment"]

    def test_wrapper_class_for_class(self):
        cls = Class(name="Counter", methods=[
            Function(name="increment", return_type="int", parameters=[("step", "int")]),
            Function(name="instances", return_type="int", is_static=True),
        ])
        result = self.generator.generate_wrapper_class(cls)

        assert "public sealed partial class CounterHandle : IDisposable" in result
        assert 'EntryPoint = "counter_destroy"' in result
        assert "private static partial void NativeDestroy(nint handle);" in result
        assert "~CounterHandle()" in result
        assert "public static CounterHandle Create() => new CounterHandle(NativeCreate());" in result
        assert 'EntryPoint = "counter_create"' in result
        assert "private static partial nint NativeCreate();" in result
        assert "private nint LiveHandle" in result
        assert "public int increment(int step) => NativeMethods.Counter_increment(LiveHandle, step);" in result
        assert "public static int instances() => NativeMethods.Counter_instances();" in result

    def test_wrapper_class_for_struct(self):
        result = self.generator.generate_wrapper_class(Struct(name="Point", fields=[("x", "int")]))
        assert "public sealed partial class PointHandle : IDisposable" in result
        assert "Owning wrapper for a native Point struct." in result
        assert "LiveHandle" not in result
        assert result.endswith("}\n")

    def test_custom_class_name(self):
        generator = CodeGenerator("mylib", self.type_mapper, class_name="Native")
        result = generator.generate_wrapper_function(Function(name="tick"))
        assert "=> Native.tick();" in result

    def test_internal_visibility(self):
        generator = CodeGenerator("mylib", self.type_mapper, visibility="internal")
        assert "internal struct Point" in generator.generate_struct(Struct(name="Point"))
        assert "internal enum Mode" in generator.generate_enum(Enum(name="Mode", values=[("A", 0)]))


class TestOutputBuilder:
    """Test the OutputBuilder class"""

    def test_build_header_and_namespace(self):
        result = OutputBuilder.build("MyNs", ["public struct A\n{\n}\n"])
        assert result.startswith("// <auto-generated />\n#nullable enable\n")
        assert "using System.Runtime.InteropServices;" in result
        assert "namespace MyNs;" in result
        assert result.endswith("public struct A\n{\n}\n")

    def test_global_usings_come_first(self):
        result = OutputBuilder.build("MyNs", [], ["global using Handle = nint;"])
        assert result.index("global using Handle = nint;") < result.index("using System;")
        assert result.index("using System;") < result.index("namespace MyNs;")

    def test_build_empty(self):
        result = OutputBuilder.build("MyNs", [])
        assert result.endswith("namespace MyNs;\n")

    def test_build_class(self):
        result = OutputBuilder.build_class("public static class Foo", ["    public static void A() { }\n"])
        assert result == "public static class Foo\n{\n    public static void A() { }\n}\n"
