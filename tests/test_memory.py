"""
Tests for native memory helper generation
"""

from cs_ffi_generator.memory import MemoryHelperGenerator


class TestMemoryHelperGenerator:
    """Test the MemoryHelperGenerator class"""

    def setup_method(self):
        self.generator = MemoryHelperGenerator()

    def test_alloc(self):
        result = self.generator.generate_alloc("Point")
        assert "public static nint AllocPoint(int count = 1)" in result
        assert "Marshal.AllocHGlobal(Marshal.SizeOf<Point>() * count)" in result

    def test_free_ignores_zero(self):
        result = self.generator.generate_free("Point")
        assert "public static void FreePoint(nint pointer)" in result
        assert "if (pointer != 0)" in result

    def test_copy_to_native_transfers_ownership(self):
        result = self.generator.generate_copy_to_native("Point")
        assert "public static nint CopyPointToNative(Point value)" in result
        assert "Marshal.StructureToPtr(value, pointer, false);" in result
        assert "Ownership of the returned pointer transfers to the caller" in result

    def test_copy_from_native_borrows(self):
        result = self.generator.generate_copy_from_native("Point")
        assert "public static Point CopyPointFromNative(nint pointer) => Marshal.PtrToStructure<Point>(pointer);" in result
        assert "neither released nor taken over" in result

    def test_marshal_array(self):
        result = self.generator.generate_marshal_array("Point")
        assert "public static nint MarshalPointArray(Point[] values)" in result
        assert "pointer + i * elementSize" in result

    def test_span_from_pointer(self):
        result = self.generator.generate_span("Point")
        assert "public static Span<Point> SpanFromPointPointer(nint pointer, int length)" in result
        assert "MemoryMarshal.CreateSpan(ref Unsafe.AddByteOffset(ref Unsafe.NullRef<Point>(), pointer), length)" in result
        assert "ArgumentOutOfRangeException.ThrowIfNegative(length);" in result

    def test_free_documents_single_release(self):
        result = self.generator.generate_free("Point")
        assert "Point holds no managed references" in result

    def test_pinning(self):
        result = self.generator.generate_pinning("Point")
        assert "GC.AllocateArray<Point>(count, pinned: true)" in result
        assert "GCHandle.Alloc(box, GCHandleType.Pinned)" in result
        assert "handle.Free();" in result

    def test_helpers_group(self):
        result = self.generator.generate_helpers("Rect")
        assert result.startswith("    #region Rect")
        assert result.rstrip().endswith("#endregion")
        for member in ["AllocRect", "FreeRect", "CopyRectToNative", "CopyRectFromNative",
                       "MarshalRectArray", "SpanFromRectPointer", "AllocatePinnedRectArray", "WithPinnedRect"]:
            assert member in result

    def test_section_has_one_group_per_struct(self):
        parts = self.generator.generate_section_body(["Point", "Rect", "Point"])
        assert len(parts) == 1
        body = parts[0]
        assert body.startswith("public static class MemoryHelpers")
        assert body.count("#region Point") == 1
        assert body.count("#region Rect") == 1
        assert body.index("#region Point") < body.index("#region Rect")

    def test_section_empty_without_structs(self):
        assert self.generator.generate_section_body([]) == []

    def test_internal_visibility(self):
        parts = MemoryHelperGenerator(visibility="internal").generate_section_body(["Point"])
        assert parts[0].startswith("internal static class MemoryHelpers")
