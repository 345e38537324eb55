"""Bundle compiler package.

Turns bundle YAML into the typed tree and back, compiles merged bundles and
loads the linter configuration.
"""

from .bundle_formatter import format_bundle, format_file, format_paths, walk_bundle_files
from .bundle_parser import parse_file, parse_yaml
from .config_loader import ConfigLoader, load_config
from .mql import BundleCompiler, MqlCompiler, compile_bundles

__all__ = [
    "BundleCompiler",
    "ConfigLoader",
    "MqlCompiler",
    "compile_bundles",
    "format_bundle",
    "format_file",
    "format_paths",
    "load_config",
    "parse_file",
    "parse_yaml",
    "walk_bundle_files",
]
