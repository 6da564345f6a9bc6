"""Core rawexec library exports."""

from rawexec.lib.exec import ExecError, ExecOptions, ExecResult, execute

__all__ = ["ExecError", "ExecOptions", "ExecResult", "execute"]
