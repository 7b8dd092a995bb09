"""Closed table of supported languages and the interpreter that runs each."""
import traceback
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


def check_python_syntax(source_code: str, filename: str) -> Optional[str]:
    """Return a formatted error when the source cannot even be compiled.

    The check runs on the worker's own grammar, not on the configured
    interpreter's. ``PYTHON_INTERPRETER`` defaults to the worker's own
    executable so the two agree; point it elsewhere only at a Python of the
    same version, or code valid there may be reported as FAILED.
    """
    try:
        compile(source_code, filename, 'exec', dont_inherit=True)
    except (SyntaxError, ValueError) as e:
        return ''.join(traceback.format_exception_only(type(e), e)).rstrip('\n')
    return None


@dataclass(frozen=True)
class LanguageRuntime:
    name: str
    extension: str
    interpreter: Sequence[str]
    syntax_check: Optional[Callable[[str, str], Optional[str]]] = None

    def command(self, source_path):
        return [*self.interpreter, str(source_path)]


def build_runtimes(python_interpreter='python3', node_interpreter='node'):
    return {
        'python': LanguageRuntime('python', '.py', (python_interpreter,), check_python_syntax),
        'javascript': LanguageRuntime('javascript', '.js', (node_interpreter,)),
    }
