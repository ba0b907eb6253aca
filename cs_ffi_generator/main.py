#!/usr/bin/env python3
"""
CLI entry point for the layered C# FFI bindings generator
"""

import argparse
import os
import sys
import traceback
from pathlib import Path

import clang.cindex

# Add parent directory to sys.path for direct execution
if __name__ == '__main__' and __package__ is None:
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cs_ffi_generator.clang_frontend import HeaderParser
from cs_ffi_generator.config import parse_config_file
from cs_ffi_generator.generator import BindingGenerator
from cs_ffi_generator.type_mapper import TypeMapper


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate layered C# bindings (types, raw LibraryImport bindings, memory helpers, "
                    "delegates, wrappers) from C/C++ header files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --config bindings.xml --output output_dir
  %(prog)s -C config.xml -o generated_bindings --include-depth 1
        """
    )

    parser.add_argument(
        "-C", "--config",
        metavar="CONFIG_FILE",
        required=True,
        help="XML configuration file specifying bindings to generate"
    )

    parser.add_argument(
        "-o", "--output",
        metavar="DIRECTORY",
        required=True,
        help="Output directory; each library is written to its own subdirectory"
    )

    parser.add_argument(
        "--include-depth",
        type=int,
        default=None,
        metavar="N",
        help="Process included files up to depth N (0=only input files, 1=direct includes, etc.; default: infinite)"
    )

    parser.add_argument(
        "--language",
        choices=["c", "c++"],
        default="c",
        help="Language the headers are parsed as (default: c)"
    )

    parser.add_argument(
        "--clang-path",
        metavar="PATH",
        help="Path to libclang library (if not in default location)"
    )

    parser.add_argument(
        "--ignore-missing",
        action="store_true",
        help="Continue processing even if some header files are not found (default: fail on missing files)"
    )

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = parse_config_file(args.config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error reading config file: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.header_library_pairs:
        print("Error: No libraries found in config file", file=sys.stderr)
        sys.exit(1)

    # Set clang library path if provided
    if args.clang_path:
        clang.cindex.Config.set_library_path(args.clang_path)

    try:
        for library in config.libraries:
            if not library.headers:
                continue

            header_parser = HeaderParser(
                include_dirs=config.include_dirs + library.include_dirs,
                include_depth=args.include_depth,
                language=args.language,
            )
            declarations = header_parser.parse_all(library.headers, ignore_missing=args.ignore_missing)

            type_mapper = TypeMapper()
            for pattern, is_regex in config.flag_enums:
                type_mapper.add_flag_enum(pattern, is_regex)

            generator = BindingGenerator(
                type_mapper=type_mapper,
                class_name=library.class_name,
                visibility=config.visibility,
            )
            generated = generator.generate(declarations, namespace=library.namespace, library_name=library.name)

            library_dir = Path(args.output) / library.name
            for path in generated.write(library_dir):
                print(f"Generated {path}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
