#!/usr/bin/env python3
"""CLI for aconfig2bst: aconfig modules to BuildStream converter.

Usage:
    aconfig2bst convert <aosp-root> [--release-config flags.yaml] [--flag KEY=VALUE] [--output-dir elements/]
    aconfig2bst info <aosp-root>        (show modules and packages per release config)
    aconfig2bst check <aosp-root>       (only validate package uniqueness)
    aconfig2bst parse <path/to/Android.bp>   (dump AST for debugging)
"""

import argparse
import os
import sys

# Add parent directory to path so we can import aconfig2bst
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from aconfig2bst.aggregator import AconfigError, validate_unique_packages
from aconfig2bst.config import ConfigError, ReleaseConfig
from aconfig2bst.converter import Converter
from aconfig2bst.loader import Loader
from aconfig2bst.module_types import DeclarationsModule, ValuesModule, ValueSetModule
from aconfig2bst.parser import ParseError, parse_file


def load_release_config(args) -> ReleaseConfig:
    if args.release_config:
        return ReleaseConfig.from_file(args.release_config, args.flag)
    config = ReleaseConfig()
    config.apply_overrides(args.flag)
    return config


def report(errors, skipped=(), verbose=False):
    if errors:
        print("Errors:", file=sys.stderr)
        for err in errors:
            print(f"  {err}", file=sys.stderr)
    if verbose and skipped:
        print(f"Skipped non-aconfig modules ({len(skipped)}):", file=sys.stderr)
        for s in skipped:
            print(f"  {s}", file=sys.stderr)


def cmd_convert(args):
    """Convert the aconfig modules of a tree to .bst elements."""
    if not os.path.isdir(args.aosp_root):
        print(f"Error: directory not found: {args.aosp_root}", file=sys.stderr)
        return 1

    converter = Converter(args.aosp_root, load_release_config(args),
                          output_prefix=args.prefix)
    result = converter.convert()
    report(result.errors, result.skipped, args.verbose)
    if result.errors:
        return 1

    if not result.elements:
        print("No elements generated.", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Would generate {len(result.elements)} element(s):")
        for elem in result.elements:
            print(f"  {elem['filename']}")
            print(converter.format_bst(elem["content"]))
            print("---")
    else:
        converter.write_elements(result, args.output_dir)
        print(f"Generated {len(result.elements)} element(s) in {args.output_dir}/:")
        for elem in result.elements:
            print(f"  {elem['filename']}")

    return 0


def cmd_info(args):
    """Show aconfig modules and the packages each release config sees."""
    if not os.path.isdir(args.aosp_root):
        print(f"Error: directory not found: {args.aosp_root}", file=sys.stderr)
        return 1

    converter = Converter(args.aosp_root, load_release_config(args))
    loaded = converter.loader.load()
    report(loaded.errors, loaded.ignored, args.verbose)
    if loaded.errors:
        return 1

    print(f"Blueprints: {len(loaded.blueprints)}")
    for cls in (DeclarationsModule, ValueSetModule, ValuesModule):
        modules = loaded.of_type(cls)
        print(f"{cls.__name__}: {len(modules)}")
        for module in modules:
            package = getattr(module, "package", "")
            suffix = f" ({package})" if package else ""
            print(f"  {module.name}{suffix}")

    try:
        aggregation = converter.aggregate(loaded)
    except AconfigError as e:
        report([str(e)])
        return 1

    print()
    for config in sorted(aggregation):
        print(f"Release config {config or '<default>'}:")
        for package, values in aggregation[config].items():
            print(f"  {package}: {len(values)} value file(s)")
    return 0


def cmd_check(args):
    """Validate that every package has a single aconfig_declarations."""
    if not os.path.isdir(args.aosp_root):
        print(f"Error: directory not found: {args.aosp_root}", file=sys.stderr)
        return 1

    release_config = load_release_config(args)
    loaded = Loader(args.aosp_root).load()
    report(loaded.errors)
    if loaded.errors:
        return 1

    declarations = loaded.of_type(DeclarationsModule)
    try:
        validate_unique_packages(
            {config: declarations for config in release_config.configuration_names()})
    except AconfigError as e:
        report([str(e)])
        return 1
    print(f"{len(declarations)} aconfig_declarations, all packages unique")
    return 0


def cmd_parse(args):
    """Parse and dump AST for debugging."""
    bp_path = args.file
    if not os.path.exists(bp_path):
        print(f"Error: file not found: {bp_path}", file=sys.stderr)
        return 1

    try:
        file_ast = parse_file(bp_path)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"File: {file_ast.name}")
    print(f"Definitions: {len(file_ast.defs)}")
    print()

    for defn in file_ast.defs:
        print(f"  {defn}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="aconfig2bst: aconfig modules to BuildStream .bst converter"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_tree_args(p):
        p.add_argument("aosp_root", help="AOSP source tree root")
        p.add_argument("--release-config", default="",
                       help="YAML file of release build flags")
        p.add_argument("--flag", action="append", default=[], metavar="KEY=VALUE",
                       help="Set a build flag (repeatable, overrides --release-config)")
        p.add_argument("--verbose", "-v", action="store_true",
                       help="Also list modules that were skipped")

    # convert
    p_convert = subparsers.add_parser("convert", help="Convert aconfig modules to .bst elements")
    add_tree_args(p_convert)
    p_convert.add_argument("--output-dir", default="elements", help="Output directory (default: elements/)")
    p_convert.add_argument("--prefix", default="aconfig", help="Element filename prefix (default: aconfig)")
    p_convert.add_argument("--dry-run", "-n", action="store_true", help="Print elements without writing files")

    # info
    p_info = subparsers.add_parser("info", help="Show aconfig modules and packages")
    add_tree_args(p_info)

    # check
    p_check = subparsers.add_parser("check", help="Validate package uniqueness")
    add_tree_args(p_check)

    # parse
    p_parse = subparsers.add_parser("parse", help="Parse Android.bp and dump AST")
    p_parse.add_argument("file", help="Path to Android.bp file")

    args = parser.parse_args(argv)

    commands = {
        "convert": cmd_convert,
        "info": cmd_info,
        "check": cmd_check,
        "parse": cmd_parse,
    }
    if args.command not in commands:
        parser.print_help()
        return 1
    try:
        return commands[args.command](args)
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
