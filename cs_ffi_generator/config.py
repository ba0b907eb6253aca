"""
XML configuration file parsing for the C# FFI bindings generator
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .constants import DEFAULT_NAMESPACE, NATIVE_METHODS_CLASS, VISIBILITIES


@dataclass
class LibraryConfig:
    """One native library and the headers that describe it"""
    name: str
    namespace: str = DEFAULT_NAMESPACE
    class_name: str = NATIVE_METHODS_CLASS
    headers: list[str] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)


@dataclass
class BindingConfig:
    """Configuration for C# bindings generation"""
    libraries: list[LibraryConfig] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)
    flag_enums: list[tuple[str, bool]] = field(default_factory=list)
    visibility: str = "public"

    @property
    def header_library_pairs(self) -> list[tuple[str, str]]:
        return [(header, library.name) for library in self.libraries for header in library.headers]


def _parse_bool(element, name: str) -> bool:
    return element.get(name, "false").strip().lower() == "true"


def parse_config_file(config_path) -> BindingConfig:
    """Parse XML configuration file and return BindingConfig object"""
    try:
        tree = ET.parse(config_path)
        root = tree.getroot()

        if root.tag != "bindings":
            raise ValueError(f"Expected root element 'bindings', got '{root.tag}'")

        config = BindingConfig()

        # Get global visibility setting (default to "public")
        config.visibility = root.get("visibility", "public").strip().lower()
        if config.visibility not in VISIBILITIES:
            raise ValueError(f"Invalid visibility value '{config.visibility}'. Must be 'public' or 'internal'.")

        # Get global include directories
        for include_dir in root.findall("include_directory"):
            path = include_dir.get("path")
            if not path:
                raise ValueError("Include directory element missing 'path' attribute")
            config.include_dirs.append(path.strip())

        # Get global flag enums (enum patterns that should have [Flags] attribute)
        for flag_enum in root.findall("flags"):
            pattern = flag_enum.get("pattern")
            if not pattern:
                raise ValueError("Flags element missing 'pattern' attribute")
            config.flag_enums.append((pattern.strip(), _parse_bool(flag_enum, "regex")))

        for library in root.findall("library"):
            library_name = library.get("name")
            if not library_name:
                raise ValueError("Library element missing 'name' attribute")
            library_name = library_name.strip()

            library_config = LibraryConfig(
                name=library_name,
                namespace=library.get("namespace", DEFAULT_NAMESPACE).strip(),
                class_name=library.get("class", NATIVE_METHODS_CLASS).strip(),
            )

            # Get library-specific include directories
            for include_dir in library.findall("include_directory"):
                path = include_dir.get("path")
                if not path:
                    raise ValueError(f"Include directory element in library '{library_name}' missing 'path' attribute")
                library_config.include_dirs.append(path.strip())

            # Get include files
            for include in library.findall("include"):
                header_path = include.get("file")
                if not header_path:
                    raise ValueError(f"Include element in library '{library_name}' missing 'file' attribute")
                library_config.headers.append(header_path.strip())

            config.libraries.append(library_config)

        return config

    except ET.ParseError as e:
        raise ValueError(f"XML parsing error: {e}")
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
