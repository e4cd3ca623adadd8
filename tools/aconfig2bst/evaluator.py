"""Variable resolution and expression evaluation for Android.bp ASTs.

Turns Blueprint expressions into plain Python values (str, bool, int, list,
dict) after resolving variables and + concatenation.
"""

from typing import Any, Dict, Optional
from . import syntax


class EvalError(Exception):
    pass


class Evaluator:
    """Evaluates Blueprint AST expressions given a variable scope."""

    def __init__(self, variables: Optional[Dict[str, syntax.Expression]] = None):
        self.variables: Dict[str, syntax.Expression] = dict(variables or {})

    def add_file_variables(self, file: syntax.File):
        """Register all top-level assignments from a file."""
        for assignment in file.assignments:
            existing = self.variables.get(assignment.name)
            if assignment.append:
                if existing is None:
                    raise EvalError(f"{assignment.pos}: += to undefined variable {assignment.name}")
                self.variables[assignment.name] = syntax.ConcatExpr(existing, assignment.value)
            else:
                self.variables[assignment.name] = assignment.value

    def evaluate(self, expr: syntax.Expression, _seen=()) -> Any:
        if isinstance(expr, (syntax.StringExpr, syntax.BoolExpr, syntax.IntExpr)):
            return expr.value

        if isinstance(expr, syntax.VariableRef):
            if expr.name not in self.variables:
                raise EvalError(f"Undefined variable: {expr.name}")
            if expr.name in _seen:
                raise EvalError(f"Variable refers to itself: {expr.name}")
            return self.evaluate(self.variables[expr.name], _seen + (expr.name,))

        if isinstance(expr, syntax.ListExpr):
            return [self.evaluate(v, _seen) for v in expr.values]

        if isinstance(expr, syntax.MapExpr):
            return {p.name: self.evaluate(p.value, _seen) for p in expr.properties}

        if isinstance(expr, syntax.ConcatExpr):
            left = self.evaluate(expr.left, _seen)
            right = self.evaluate(expr.right, _seen)
            if isinstance(left, list) and isinstance(right, list):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            if isinstance(left, int) and isinstance(right, int) \
                    and not isinstance(left, bool) and not isinstance(right, bool):
                return left + right
            raise EvalError(
                f"Cannot concatenate {type(left).__name__} and {type(right).__name__}"
            )

        if isinstance(expr, (syntax.SelectExpr, syntax.UnsetExpr)):
            raise EvalError("select() and unset are not supported in aconfig modules")

        raise EvalError(f"Unknown expression: {expr!r}")

    def evaluate_module(self, module: syntax.Module) -> Dict[str, Any]:
        """Evaluate all property values in a module into a dict."""
        return {p.name: self.evaluate(p.value) for p in module.properties}


def get_string(props: Dict[str, Any], name: str, default: str = "") -> str:
    value = props.get(name, default)
    if not isinstance(value, str):
        raise EvalError(f"property {name!r} must be a string, got {type(value).__name__}")
    return value


def get_string_list(props: Dict[str, Any], name: str) -> list:
    value = props.get(name, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise EvalError(f"property {name!r} must be a list of strings")
    return list(value)


def get_bool(props: Dict[str, Any], name: str, default: bool = False) -> bool:
    value = props.get(name, default)
    if not isinstance(value, bool):
        raise EvalError(f"property {name!r} must be a bool, got {type(value).__name__}")
    return value
