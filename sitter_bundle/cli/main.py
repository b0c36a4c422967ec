import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from sitter_bundle.build import BuildError, BundleBuilder
from sitter_bundle.config import BundleConfig
from sitter_bundle.logging import configure_logging
from sitter_bundle.native import LanguageLoadError
from sitter_bundle.registry import mount_languages, run_self_tests


def _load_config(args: argparse.Namespace) -> BundleConfig:
    overrides: Dict[str, Any] = {}
    for field in ("grammars_dir", "out_dir", "build_dir", "project_root"):
        value = getattr(args, field, None)
        if value is not None:
            overrides[field] = value

    if args.config:
        config = BundleConfig.from_file(args.config)
        config = config.model_copy(update=overrides)
    elif args.from_env:
        config = BundleConfig.from_env(**overrides)
    else:
        config = BundleConfig(**overrides)

    update: Dict[str, Any] = {}
    if args.component:
        components = dict(config.components)
        components.update({name: True for name in args.component})
        # Re-validate so the new names are normalized.
        config = BundleConfig(**{**config.model_dump(), "components": components})
    if args.highlight:
        update["highlight"] = True
    if getattr(args, "strict", False):
        update["strict"] = True
    return config.model_copy(update=update) if update else config


def build(args: argparse.Namespace) -> None:
    """Compile the enabled grammars and generate their bindings."""
    config = _load_config(args)
    report = BundleBuilder(config).run()
    for grammar in report.grammars:
        print(f"{grammar.variant:<16} {grammar.version}  {grammar.module}")
    if report.cpp_runtime is not None:
        print(f"Static C++ runtime: {report.cpp_runtime.name}")
    if report.library is not None:
        print(f"Bundle library:     {report.library}")
    else:
        print("No grammars were built.")


def list_grammars(args: argparse.Namespace) -> None:
    """Print the grammars the configuration resolves to, with their versions."""
    config = _load_config(args)
    descriptors = BundleBuilder(config).resolve()
    if not descriptors:
        print("No grammars resolved.")
        return
    for d in descriptors:
        caps = ", ".join(sorted(c.value for c in d.capabilities)) or "-"
        print(f"{d.variant:<16} {d.family:<16} {d.version}  [{caps}]")


def selftest(args: argparse.Namespace) -> None:
    """Import the generated modules and run their self-tests."""
    config = _load_config(args)
    modules = mount_languages(config.out_dir, config.enabled_components())
    if not modules:
        print(f"No generated modules found in {config.out_dir}.")
        return
    for name, module in modules.items():
        tests = run_self_tests(module)
        print(f"{name}: {len(tests)} passed")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--component",
        action="append",
        help="Enable a component, e.g. 'rust' or 'typescript-tsx'. May be repeated.",
    )
    parser.add_argument("--highlight", action="store_true", help="Enable highlighting support.")
    parser.add_argument(
        "--from-env",
        action="store_true",
        help="Read enabled components from SITTER_BUNDLE_FEATURE_* variables.",
    )
    parser.add_argument("--config", type=Path, help="Load the configuration from a JSON file.")
    parser.add_argument("--grammars-dir", dest="grammars_dir", type=Path)
    parser.add_argument("--out-dir", dest="out_dir", type=Path)
    parser.add_argument("--build-dir", dest="build_dir", type=Path)
    parser.add_argument("--project-root", dest="project_root", type=Path)
    parser.add_argument("--log-level", default="INFO")


def cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Tree-sitter grammar bundle builder",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    command_subparsers = parser.add_subparsers(
        dest="command", required=True, help="Primary commands"
    )

    build_parser = command_subparsers.add_parser(
        "build", help="Compile grammars and generate bindings."
    )
    _add_common_arguments(build_parser)
    build_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when an enabled component has no vendored sources.",
    )
    build_parser.set_defaults(func=build)

    list_parser = command_subparsers.add_parser("list", help="Show the grammars that would be built.")
    _add_common_arguments(list_parser)
    list_parser.set_defaults(func=list_grammars)

    selftest_parser = command_subparsers.add_parser(
        "selftest", help="Run the self-tests of the generated modules."
    )
    _add_common_arguments(selftest_parser)
    selftest_parser.set_defaults(func=selftest)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        args.func(args)
    except (BuildError, LanguageLoadError) as e:
        print(str(e).rstrip(), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
