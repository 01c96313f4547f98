"""Interpreter-side collaborators of the resolver."""

from .host import FallbackModuleFinder, HostRuntime, module_name_from_path

__all__ = ["FallbackModuleFinder", "HostRuntime", "module_name_from_path"]
