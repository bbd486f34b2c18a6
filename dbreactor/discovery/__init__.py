"""
Script Discovery Module.

Finds upgrade scripts and pairs them with downgrade scripts:
- Script providers (file system, in-memory, Python code scripts)
- Downgrade matching (same name, suffix, prefix)
- Migration builder
"""

from dbreactor.discovery.builder import ScriptMigrationBuilder
from dbreactor.discovery.code import CodeScriptProvider, FunctionCodeScript, load_code_script
from dbreactor.discovery.downgrade import (
    DowngradeMatchingMode,
    DowngradeMatchingOptions,
    FileSystemDowngradeResolver,
    ScriptSetDowngradeResolver,
    downgrade_name_for,
)
from dbreactor.discovery.providers import FileSystemScriptProvider, StaticScriptProvider

__all__ = [
    "FileSystemScriptProvider",
    "StaticScriptProvider",
    "CodeScriptProvider",
    "FunctionCodeScript",
    "load_code_script",
    "DowngradeMatchingMode",
    "DowngradeMatchingOptions",
    "FileSystemDowngradeResolver",
    "ScriptSetDowngradeResolver",
    "downgrade_name_for",
    "ScriptMigrationBuilder",
]
