"""
Native memory helpers for marshaled struct types

Ownership contract carried into the generated documentation:
- Copy{T}ToNative and Marshal{T}Array hand the returned pointer to the caller,
  who releases it with Free{T} exactly once.
- Copy{T}FromNative and SpanFrom{T}Pointer only read; the pointer passed in
  stays owned by whoever owned it before.

Struct layouts hold unmanaged fields only (strings are nint), so
StructureToPtr never allocates on the side and releasing the block is enough.
"""

from .constants import MEMORY_HELPERS_CLASS


class MemoryHelperGenerator:
    """Generates alloc/free/copy/pin helpers per struct type"""

    def __init__(self, visibility: str = "public"):
        self.visibility = visibility

    @staticmethod
    def generate_alloc(name: str) -> str:
        return f'''    /// <summary>
    /// Allocates an uninitialized native buffer large enough for <paramref name="count"/> {name} values.
    /// The caller owns the buffer and must release it with <see cref="Free{name}"/>.
    /// </summary>
    public static nint Alloc{name}(int count = 1)
    {{
        ArgumentOutOfRangeException.ThrowIfNegative(count);
        return Marshal.AllocHGlobal(Marshal.SizeOf<{name}>() * count);
    }}
'''

    @staticmethod
    def generate_free(name: str) -> str:
        return f'''    /// <summary>
    /// Releases a buffer obtained from Alloc{name}, Copy{name}ToNative or Marshal{name}Array.
    /// Call exactly once per buffer; zero is ignored. {name} holds no managed references,
    /// so nothing else was allocated alongside it. Strings its nint fields point at
    /// stay owned by whoever allocated them.
    /// </summary>
    public static void Free{name}(nint pointer)
    {{
        if (pointer != 0)
        {{
            Marshal.FreeHGlobal(pointer);
        }}
    }}
'''

    @staticmethod
    def generate_copy_to_native(name: str) -> str:
        return f'''    /// <summary>
    /// Copies a {name} into newly allocated native memory.
    /// Ownership of the returned pointer transfers to the caller; release it with <see cref="Free{name}"/>.
    /// </summary>
    public static nint Copy{name}ToNative({name} value)
    {{
        nint pointer = Alloc{name}();
        Marshal.StructureToPtr(value, pointer, false);
        return pointer;
    }}
'''

    @staticmethod
    def generate_copy_from_native(name: str) -> str:
        return f'''    /// <summary>
    /// Reads a {name} from native memory. The pointer is neither released nor taken over.
    /// </summary>
    public static {name} Copy{name}FromNative(nint pointer) => Marshal.PtrToStructure<{name}>(pointer);
'''

    @staticmethod
    def generate_marshal_array(name: str) -> str:
        return f'''    /// <summary>
    /// Copies an array of {name} into one contiguous native buffer.
    /// Ownership of the returned pointer transfers to the caller; release it with <see cref="Free{name}"/>.
    /// </summary>
    public static nint Marshal{name}Array({name}[] values)
    {{
        ArgumentNullException.ThrowIfNull(values);
        int elementSize = Marshal.SizeOf<{name}>();
        nint pointer = Alloc{name}(values.Length);
        for (int i = 0; i < values.Length; i++)
        {{
            Marshal.StructureToPtr(values[i], pointer + i * elementSize, false);
        }}
        return pointer;
    }}
'''

    @staticmethod
    def generate_span(name: str) -> str:
        return f'''    /// <summary>
    /// Views <paramref name="length"/> {name} values in native memory without copying.
    /// The span is only valid while the native buffer is.
    /// </summary>
    public static Span<{name}> SpanFrom{name}Pointer(nint pointer, int length)
    {{
        ArgumentOutOfRangeException.ThrowIfNegative(length);
        return MemoryMarshal.CreateSpan(ref Unsafe.AddByteOffset(ref Unsafe.NullRef<{name}>(), pointer), length);
    }}
'''

    @staticmethod
    def generate_pinning(name: str) -> str:
        return f'''    /// <summary>
    /// Allocates a {name} array on the pinned object heap so its address stays stable.
    /// </summary>
    public static {name}[] AllocatePinned{name}Array(int count) => GC.AllocateArray<{name}>(count, pinned: true);

    /// <summary>
    /// Runs <paramref name="action"/> with the address of a pinned copy of <paramref name="value"/>.
    /// The address is only valid for the duration of the call.
    /// </summary>
    public static TResult WithPinned{name}<TResult>({name} value, Func<nint, TResult> action)
    {{
        {name}[] box = [value];
        GCHandle handle = GCHandle.Alloc(box, GCHandleType.Pinned);
        try
        {{
            return action(handle.AddrOfPinnedObject());
        }}
        finally
        {{
            handle.Free();
        }}
    }}
'''

    def generate_helpers(self, name: str) -> str:
        """Generate the full helper group for one struct type"""
        parts = [
            self.generate_alloc(name),
            self.generate_free(name),
            self.generate_copy_to_native(name),
            self.generate_copy_from_native(name),
            self.generate_marshal_array(name),
            self.generate_span(name),
            self.generate_pinning(name),
        ]
        return f"    #region {name}\n\n" + "\n".join(parts) + "\n    #endregion\n"

    def generate_section_body(self, struct_names) -> list[str]:
        """Helper class with exactly one group per distinct struct name"""
        unique_names = list(dict.fromkeys(struct_names))
        if not unique_names:
            return []
        groups = "\n".join(self.generate_helpers(name) for name in unique_names)
        return [f"{self.visibility} static class {MEMORY_HELPERS_CLASS}\n{{\n{groups}}}\n"]
