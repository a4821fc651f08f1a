'''
# LaTeX to OMML

Lowers the parser's expression tree into Office Math Markup, and provides compile_latex(), the
entry point for turning a LaTeX snippet into Word-ready markup.

Two engines are available:

* "native" (the default) uses latex_parser, and handles the common core of LaTeX math,
  including matrices and multi-line environments;
* "mathml" runs latex2mathml first, and passes the result through mathml_omml. This copes with more
  of LaTeX (accents, less common environments), but is stricter about malformed input. If it fails,
  we fall back to the native engine.
'''

from __future__ import annotations

from . import omml
from .latex_parser import (Delimiter, Empty, Environment, Frac, Group, MathNode, NAry, Number,
                           Operator, Radical, Root, Sqrt, Symbol, Text, parse)
from .mathml_omml import compile_presentation_markup
from .progress import Progress

import latex2mathml.converter

import re
from typing import Callable, Dict, List, Optional, Type

NAME = 'mathpaste.latex'  # For error messages

ENGINE_NATIVE = 'native'
ENGINE_MATHML = 'mathml'
ENGINES = (ENGINE_NATIVE, ENGINE_MATHML)

# Operators whose limits sit above/below, rather than to the side.
UNDER_OVER_NARY = frozenset('∑∏')

# Matrix-like environments, and the brackets around them.
MATRIX_DELIMITERS = {
    'matrix':      ('',  ''),
    'smallmatrix': ('',  ''),
    'array':       ('',  ''),
    'pmatrix':     ('(', ')'),
    'bmatrix':     ('[', ']'),
    'Bmatrix':     ('{', '}'),
    'vmatrix':     ('|', '|'),
    'Vmatrix':     ('‖', '‖'),
    'cases':       ('{', ''),
    'rcases':      ('',  '}'),
}

# A lone '\' at the end of a line, which AI output often uses in place of '\\'.
LINE_BREAK_RE = re.compile(r'(?<!\\)\\[ \t]*\n')


def repair_line_breaks(latex: str) -> str:
    return LINE_BREAK_RE.sub('\\\\\\\\\n', latex)


def _lower_children(children: List[MathNode]) -> List[omml.Node]:
    return [n for child in children for n in lower(child)]


def _lower_group(node) -> List[omml.Node]:
    return _lower_children(node.children)


def _lower_frac(node: Frac) -> List[omml.Node]:
    return [omml.fraction(lower(node.num), lower(node.den))]


def _lower_sqrt(node: Sqrt) -> List[omml.Node]:
    return [omml.radical(lower(node.base), hide_degree = True)]


def _lower_radical(node: Radical) -> List[omml.Node]:
    degree = lower(node.degree) if node.degree is not None else None
    return [omml.radical(lower(node.base), degree)]


def _lower_nary(node: NAry) -> List[omml.Node]:
    # The integrand/summand is not bound by the grammar; it simply follows as siblings, and the
    # operator's own body is left empty.
    return [omml.nary(
        node.op,
        sub = lower(node.sub) if node.sub is not None else None,
        sup = lower(node.sup) if node.sup is not None else None,
        lim_loc = 'undOver' if node.op in UNDER_OVER_NARY else 'subSup')]


def _lower_atom(node) -> List[omml.Node]:
    # Multi-letter text comes from command names like \sin or \max, which are set upright.
    return [omml.run(node.value, plain = isinstance(node, Text) and len(node.value.strip()) > 1)]


def _lower_environment(node: Environment) -> List[omml.Node]:
    '''
    Matrix-like environments become <m:m> (bracketed as appropriate), and others with several
    rows (align, gather, etc.) become <m:eqArr>, one equation per row.
    '''
    rows = [[lower(cell) for cell in row] for row in node.rows]
    name = node.name.rstrip('*')

    if name in MATRIX_DELIMITERS:
        width = max(len(row) for row in rows)
        # Word needs the same number of cells in every row.
        result = [omml.matrix([row + [[]] * (width - len(row)) for row in rows])]
        opening, closing = MATRIX_DELIMITERS[name]
        if opening:
            result.insert(0, omml.run(opening))
        if closing:
            result.append(omml.run(closing))
        return result

    lines = [[n for cell in row for n in cell] for row in rows]
    if len(lines) == 1:
        return lines[0]
    return [omml.equation_array(lines)]


def _lower_empty(_node: Empty) -> List[omml.Node]:
    return []


_LOWERERS: Dict[Type[MathNode], Callable[..., List[omml.Node]]] = {
    Root:        _lower_group,
    Group:       _lower_group,
    Frac:        _lower_frac,
    Sqrt:        _lower_sqrt,
    Radical:     _lower_radical,
    NAry:        _lower_nary,
    Symbol:      _lower_atom,
    Text:        _lower_atom,
    Number:      _lower_atom,
    Operator:    _lower_atom,
    Delimiter:   _lower_atom,
    Environment: _lower_environment,
    Empty:       _lower_empty,
}


def lower(node: MathNode) -> List[omml.Node]:
    '''Converts one AST node (including any scripts attached to it) to a list of OMML nodes.'''
    lowerer = _LOWERERS.get(type(node))
    if lowerer is None:
        raise TypeError(f'No OMML lowering for {type(node).__name__}')

    base = lowerer(node)
    if isinstance(node, NAry) or (node.sub is None and node.sup is None):
        return base

    return [omml.scripts(
        base,
        sub = lower(node.sub) if node.sub is not None else None,
        sup = lower(node.sup) if node.sup is not None else None)]


def lower_root(root: Root) -> omml.Node:
    return omml.omath(lower(root))


def latex_to_omml(latex: str) -> str:
    '''Native engine: parse, lower and render, without the outer Word wrapper.'''
    return omml.render(lower_root(parse(latex)))


def _mathml_engine(latex: str, display_mode: bool, progress: Progress) -> Optional[str]:
    try:
        mathml = latex2mathml.converter.convert(latex,
                                                display = 'block' if display_mode else 'inline')
    except Exception as e:
        progress.warning(NAME, msg = f'latex2mathml could not convert "{latex}" ({e}); '
                                     'using the native engine instead')
        return None

    return compile_presentation_markup(mathml, display_mode = display_mode, progress = progress)


def compile_latex(source: str,
                  display_mode: bool = False,
                  engine: str = ENGINE_NATIVE,
                  progress: Optional[Progress] = None) -> str:
    '''
    Converts a LaTeX math snippet (without its $...$ or similar delimiters) into OMML, wrapped
    for Word. This never raises; if conversion fails, the result is the source text as a single
    plain run.
    '''
    progress = progress or Progress()
    latex = repair_line_breaks(source.strip())

    if engine == ENGINE_MATHML and latex:
        result = _mathml_engine(latex, display_mode, progress)
        if result is not None:
            return result

    try:
        return omml.wrap_for_word(latex_to_omml(latex), display_mode)

    except Exception as e:
        progress.error(NAME, exception = e, code = source)
        return omml.wrap_for_word(omml.fallback(source), display_mode)
