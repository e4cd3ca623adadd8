"""AST node types for the subset of Blueprint used by aconfig modules.

Only what appears in Android.bp files next to aconfig modules is modelled:
literals, lists, maps, variable references, ``+`` concatenation and
``select()``/``unset``. Top-level nodes carry the position they were parsed
at so later errors can point back at the file.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Pos:
    filename: str
    line: int = 0
    col: int = 0

    def __str__(self):
        return f"{self.filename}:{self.line}:{self.col}"


# --- Expression nodes ---

@dataclass
class StringExpr:
    value: str


@dataclass
class BoolExpr:
    value: bool


@dataclass
class IntExpr:
    value: int


@dataclass
class ListExpr:
    values: list = field(default_factory=list)


@dataclass
class MapExpr:
    properties: list = field(default_factory=list)  # list of Property

    def get(self, name):
        for prop in self.properties:
            if prop.name == name:
                return prop.value
        return None


@dataclass
class VariableRef:
    name: str


@dataclass
class ConcatExpr:
    left: "Expression"
    right: "Expression"


@dataclass
class SelectExpr:
    """select(cond("arg"), { pattern: value, ... }) expression.

    ``conditions`` holds (func_name, args) pairs, more than one when the
    selection is over a tuple of conditions. ``cases`` holds
    (patterns, value) pairs with one pattern per condition.
    """
    conditions: List[tuple]
    cases: List[tuple] = field(default_factory=list)


@dataclass
class UnsetExpr:
    pass


Expression = Union[
    StringExpr, BoolExpr, IntExpr, ListExpr, MapExpr, VariableRef, ConcatExpr,
    SelectExpr, UnsetExpr,
]


# --- Top-level nodes ---

@dataclass
class Property:
    name: str
    value: Expression


@dataclass
class Assignment:
    name: str
    value: Expression
    append: bool = False  # "+=" rather than "="
    pos: Optional[Pos] = None


@dataclass
class Module:
    type: str
    properties: List[Property] = field(default_factory=list)
    pos: Optional[Pos] = None

    def __repr__(self):
        return f"Module({self.type}, name={self.name!r})"

    def get(self, name):
        for prop in self.properties:
            if prop.name == name:
                return prop.value
        return None

    @property
    def name(self):
        value = self.get("name")
        if isinstance(value, StringExpr):
            return value.value
        return None


@dataclass
class File:
    name: str
    defs: list = field(default_factory=list)

    @property
    def modules(self):
        return [d for d in self.defs if isinstance(d, Module)]

    @property
    def assignments(self):
        return [d for d in self.defs if isinstance(d, Assignment)]
