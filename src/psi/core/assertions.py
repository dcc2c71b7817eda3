"""
Check and Require assertions.

Every assertion exists in two severities:

* ``check_*`` records the failure and lets the test body continue; it returns
  False so the body can branch on it.
* ``require_*`` records the failure and raises ``TestAbort``, which ends the
  current test body. The engine catches the signal and moves on to the next
  test.

Failure reports show the caller's ``file:line``, the source text of each
operand (read back from the caller's source file) and the operand values.
An assertion that fails outside a running test terminates the process.
"""

import ast
import inspect
import linecache
import logging
import operator
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..handlers.error_handler import TestAbort, get_error_handler
from ..utils.console import Colors
from ..utils.formatting import describe_value, format_hex_buffer, should_decompose, to_bytes
from .state import RunContext, get_active_context


CHECK = "check"
REQUIRE = "require"

logger = logging.getLogger('psi.assertions')

_COMPARISONS: Dict[str, Tuple[Callable[[Any, Any], bool], str]] = {
    'eq': (operator.eq, '=='),
    'ne': (operator.ne, '!='),
    'lt': (operator.lt, '<'),
    'le': (operator.le, '<='),
    'gt': (operator.gt, '>'),
    'ge': (operator.ge, '>='),
}

_parse_cache: Dict[str, Tuple[str, Optional[ast.AST]]] = {}


def _caller_frame():
    """First frame outside this module: the line that called the assertion."""
    frame = inspect.currentframe()
    while frame is not None and frame.f_globals.get('__name__') == __name__:
        frame = frame.f_back
    return frame


def _location(frame) -> str:
    if frame is None:
        return "<unknown>:0"
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


def _parse_source(filename: str, source: str) -> Optional[ast.AST]:
    cached = _parse_cache.get(filename)
    if cached is not None and cached[0] == source:
        return cached[1]
    try:
        tree = ast.parse(source, filename)
    except (SyntaxError, ValueError):
        tree = None
    _parse_cache[filename] = (source, tree)
    return tree


def _call_name(func: ast.expr) -> Optional[str]:
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None


def _operand_texts(frame, macro_name: str, params: Sequence[str]) -> Dict[str, str]:
    """
    Recover the literal source text of the arguments of the calling assertion.

    Returns an empty mapping when the source is unavailable (interactive
    sessions, ``exec``) or the call cannot be located.
    """
    if frame is None:
        return {}
    filename = frame.f_code.co_filename
    lineno = frame.f_lineno
    lines = linecache.getlines(filename, frame.f_globals)
    if not lines:
        return {}
    source = ''.join(lines)
    tree = _parse_source(filename, source)
    if tree is None:
        return {}

    best = None
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or _call_name(node.func) != macro_name:
            continue
        end_lineno = node.end_lineno or node.lineno
        if not node.lineno <= lineno <= end_lineno:
            continue
        if best is None or (end_lineno - node.lineno) < (best.end_lineno - best.lineno):
            best = node
    if best is None:
        return {}

    texts = {}
    for param, arg in zip(params, best.args):
        texts[param] = ast.get_source_segment(source, arg) or ''
    for keyword in best.keywords:
        if keyword.arg in params:
            texts[keyword.arg] = ast.get_source_segment(source, keyword.value) or ''
    return texts


def _active_context_or_abort(macro_name: str, frame) -> RunContext:
    context = get_active_context()
    if context is None or not context.state.inside_test:
        get_error_handler().abort_process(
            f"{_location(frame)}: {macro_name} failed outside of a running test"
        )
    return context


def _check_length(n: int, frame, macro_name: str):
    if n < 0:
        get_error_handler().abort_process(
            f"{_location(frame)}: {macro_name}: `n` cannot be negative"
        )


def _fail(severity: str, context: RunContext, frame, macro_name: str,
          operands: List[str], body_lines: List[str], decompose: bool,
          headline: Optional[str] = None) -> bool:
    """
    Print a failure report and update the execution state.

    A Require failure raises ``TestAbort`` after the report is printed.
    """
    console = context.console
    location = _location(frame)

    console.write(f"{location}: ")
    console.line(headline or "FAILED", Colors.BRIGHT_RED)
    if decompose:
        console.write("  In macro : ", Colors.BRIGHT_CYAN)
        console.line(f"{macro_name}( {', '.join(operands)} )", Colors.BRIGHT_CYAN)
    for line in body_lines:
        console.line(line)

    summary = f"{location}: {macro_name}({', '.join(operands)})"
    if severity == REQUIRE:
        context.state.mark_aborted(summary)
        logger.debug(f"Require failed, aborting {context.current_name}: {summary}")
        raise TestAbort(summary)

    context.state.mark_failed(summary)
    logger.debug(f"Check failed in {context.current_name}: {summary}")
    return False


def _compare_scalar(severity: str, macro_name: str, kind: str, actual: Any, expected: Any) -> bool:
    compare, symbol = _COMPARISONS[kind]
    if compare(actual, expected):
        return True

    frame = _caller_frame()
    context = _active_context_or_abort(macro_name, frame)
    texts = _operand_texts(frame, macro_name, ('actual', 'expected'))
    actual_text = texts.get('actual', repr(actual))
    expected_text = texts.get('expected', repr(expected))

    body = [
        f"  Expected : {actual_text} {symbol} {describe_value(expected)}",
        f"    Actual : {actual_text} == {describe_value(actual)}",
    ]
    return _fail(severity, context, frame, macro_name, [actual_text, expected_text], body,
                 should_decompose(actual_text, expected_text, False))


def _compare_string(severity: str, macro_name: str, want_equal: bool, actual: Any, expected: Any) -> bool:
    if (actual == expected) == want_equal:
        return True

    frame = _caller_frame()
    context = _active_context_or_abort(macro_name, frame)
    texts = _operand_texts(frame, macro_name, ('actual', 'expected'))
    actual_text = texts.get('actual', repr(actual))
    expected_text = texts.get('expected', repr(expected))

    body = [
        f'  Expected : "{actual}" {"==" if want_equal else "!="} "{expected}"',
        f"    Actual : {'not equal' if want_equal else 'equal'}",
    ]
    return _fail(severity, context, frame, macro_name, [actual_text, expected_text], body,
                 should_decompose(actual_text, expected_text, True))


def _compare_substring(severity: str, macro_name: str, want_equal: bool,
                       actual: str, expected: str, n: int) -> bool:
    frame = _caller_frame()
    _check_length(n, frame, macro_name)
    head, ref = actual[:n], expected[:n]
    if (head == ref) == want_equal:
        return True

    context = _active_context_or_abort(macro_name, frame)
    texts = _operand_texts(frame, macro_name, ('actual', 'expected', 'n'))
    actual_text = texts.get('actual', repr(actual))
    expected_text = texts.get('expected', repr(expected))
    n_text = texts.get('n', str(n))

    body = [
        f'  Expected : "{head}" {"==" if want_equal else "!="} "{ref}"',
        f"    Actual : {'unequal substrings' if want_equal else 'equal substrings'}",
    ]
    return _fail(severity, context, frame, macro_name, [actual_text, expected_text, n_text], body,
                 should_decompose(actual_text, expected_text, True))


def _compare_buffer(severity: str, macro_name: str, want_equal: bool,
                    actual: Any, expected: Any, n: int) -> bool:
    frame = _caller_frame()
    _check_length(n, frame, macro_name)
    buff, ref = to_bytes(actual)[:n], to_bytes(expected)[:n]
    if (buff == ref) == want_equal:
        return True

    context = _active_context_or_abort(macro_name, frame)
    console = context.console
    texts = _operand_texts(frame, macro_name, ('actual', 'expected', 'n'))
    actual_text = texts.get('actual', repr(actual))
    expected_text = texts.get('expected', repr(expected))
    n_text = texts.get('n', str(n))

    body = [
        "  Expected : "
        + format_hex_buffer(buff, ref, n, console)
        + f" {'==' if want_equal else '!='} "
        + format_hex_buffer(ref, buff, n, console),
        f"    Actual : {'not equal' if want_equal else 'equal'}",
    ]
    return _fail(severity, context, frame, macro_name, [actual_text, expected_text, n_text], body,
                 should_decompose(actual_text, expected_text, True))


def _compare_truth(severity: str, macro_name: str, want_true: bool, cond: Any) -> bool:
    if bool(cond) == want_true:
        return True

    frame = _caller_frame()
    context = _active_context_or_abort(macro_name, frame)
    texts = _operand_texts(frame, macro_name, ('cond',))
    cond_text = texts.get('cond', repr(cond))

    body = [
        f"  Expected : {want_true}",
        f"    Actual : {not want_true}",
    ]
    return _fail(severity, context, frame, macro_name, [cond_text], body,
                 should_decompose(cond_text, None, False))


def _condition(severity: str, macro_name: str, cond: Any, message: Optional[str],
               suffix: str = '', params: Sequence[str] = ('cond', 'message')) -> bool:
    if cond:
        return True

    frame = _caller_frame()
    context = _active_context_or_abort(macro_name, frame)
    texts = _operand_texts(frame, macro_name, params)
    cond_text = texts.get(params[0], repr(cond)) + suffix

    body = [
        "The following assertion failed: ",
        context.console.colorize(f"    {macro_name}( {cond_text} )", Colors.BRIGHT_CYAN),
    ]
    return _fail(severity, context, frame, macro_name, [cond_text], body, False, headline=message)


# Plain conditions

def check(cond: Any, message: Optional[str] = None) -> bool:
    return _condition(CHECK, 'check', cond, message)


def require(cond: Any, message: Optional[str] = None) -> bool:
    return _condition(REQUIRE, 'require', cond, message)


def check_null(value: Any) -> bool:
    return _condition(CHECK, 'check_null', value is None, None, ' is None', ('value',))


def check_not_null(value: Any) -> bool:
    return _condition(CHECK, 'check_not_null', value is not None, None, ' is not None', ('value',))


def require_null(value: Any) -> bool:
    return _condition(REQUIRE, 'require_null', value is None, None, ' is None', ('value',))


def require_not_null(value: Any) -> bool:
    return _condition(REQUIRE, 'require_not_null', value is not None, None, ' is not None', ('value',))


# Scalar comparisons

def check_eq(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_eq', 'eq', actual, expected)


def check_ne(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_ne', 'ne', actual, expected)


def check_lt(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_lt', 'lt', actual, expected)


def check_le(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_le', 'le', actual, expected)


def check_gt(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_gt', 'gt', actual, expected)


def check_ge(actual: Any, expected: Any) -> bool:
    return _compare_scalar(CHECK, 'check_ge', 'ge', actual, expected)


def require_eq(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_eq', 'eq', actual, expected)


def require_ne(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_ne', 'ne', actual, expected)


def require_lt(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_lt', 'lt', actual, expected)


def require_le(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_le', 'le', actual, expected)


def require_gt(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_gt', 'gt', actual, expected)


def require_ge(actual: Any, expected: Any) -> bool:
    return _compare_scalar(REQUIRE, 'require_ge', 'ge', actual, expected)


# Whole strings

def check_streq(actual: str, expected: str) -> bool:
    return _compare_string(CHECK, 'check_streq', True, actual, expected)


def check_strne(actual: str, expected: str) -> bool:
    return _compare_string(CHECK, 'check_strne', False, actual, expected)


def require_streq(actual: str, expected: str) -> bool:
    return _compare_string(REQUIRE, 'require_streq', True, actual, expected)


def require_strne(actual: str, expected: str) -> bool:
    return _compare_string(REQUIRE, 'require_strne', False, actual, expected)


# Length-bounded substrings

def check_substreq(actual: str, expected: str, n: int) -> bool:
    return _compare_substring(CHECK, 'check_substreq', True, actual, expected, n)


def check_substrne(actual: str, expected: str, n: int) -> bool:
    return _compare_substring(CHECK, 'check_substrne', False, actual, expected, n)


def require_substreq(actual: str, expected: str, n: int) -> bool:
    return _compare_substring(REQUIRE, 'require_substreq', True, actual, expected, n)


def require_substrne(actual: str, expected: str, n: int) -> bool:
    return _compare_substring(REQUIRE, 'require_substrne', False, actual, expected, n)


# Fixed-length byte buffers

def check_buf_eq(actual: Any, expected: Any, n: int) -> bool:
    return _compare_buffer(CHECK, 'check_buf_eq', True, actual, expected, n)


def check_buf_ne(actual: Any, expected: Any, n: int) -> bool:
    return _compare_buffer(CHECK, 'check_buf_ne', False, actual, expected, n)


def require_buf_eq(actual: Any, expected: Any, n: int) -> bool:
    return _compare_buffer(REQUIRE, 'require_buf_eq', True, actual, expected, n)


def require_buf_ne(actual: Any, expected: Any, n: int) -> bool:
    return _compare_buffer(REQUIRE, 'require_buf_ne', False, actual, expected, n)


# Booleans

def check_true(cond: Any) -> bool:
    return _compare_truth(CHECK, 'check_true', True, cond)


def check_false(cond: Any) -> bool:
    return _compare_truth(CHECK, 'check_false', False, cond)


def require_true(cond: Any) -> bool:
    return _compare_truth(REQUIRE, 'require_true', True, cond)


def require_false(cond: Any) -> bool:
    return _compare_truth(REQUIRE, 'require_false', False, cond)


def warn(message: str) -> None:
    """
    Print a warning attributed to the calling line and count it.

    Outside a run the warning is only logged.
    """
    frame = _caller_frame()
    location = _location(frame)
    context = get_active_context()
    if context is None:
        logger.warning(f"{location}: {message}")
        return

    context.warnings += 1
    context.console.line(f"{location}:", Colors.YELLOW)
    context.console.line(f"WARNING: {message}", Colors.YELLOW)
