"""Capturing the current call stack as text."""

import inspect
import sys
import traceback
from pathlib import Path


def _function_name(frame) -> str:
    code = frame.f_code
    name = getattr(code, "co_qualname", code.co_name)
    module = inspect.getmodule(frame)
    prefix = module.__name__ if module is not None else Path(code.co_filename).stem
    return f"{prefix}.{name}" if prefix else name


def take_stacktrace(skip: int) -> str:
    """Return the stack as text, starting ``skip`` frames above the caller.

    Each frame is written as the function name, then a tab-indented
    ``file:line`` on the next line; frames are separated by newlines.
    """
    frame = sys._getframe(1)
    entries = []
    for i, (f, lineno) in enumerate(traceback.walk_stack(frame)):
        if i < skip:
            continue
        entries.append(f"{_function_name(f)}\n\t{f.f_code.co_filename}:{lineno}")
    return "\n".join(entries)