'''
# LaTeX math parser

A recursive-descent parser over the tokens produced by latex_lexer, building a small expression
tree. It handles only a core of LaTeX math: fractions, roots, scripts, big operators,
\\left/\\right, environments (split into rows and cells) and a table of symbols. Everything else
degrades rather than fails: an unknown command becomes a text atom holding its name, and
unbalanced braces are tolerated. AI-generated LaTeX is often slightly broken, and partial output
is far more useful than none.
'''

from __future__ import annotations

from .latex_lexer import Token, TokenKind, tokenize

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional


@dataclass
class MathNode:
    '''Base of all AST node types. Each concrete type may carry a subscript and/or superscript.'''


@dataclass
class Root(MathNode):
    children: List[MathNode] = field(default_factory = list)
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Group(MathNode):
    children: List[MathNode] = field(default_factory = list)
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Frac(MathNode):
    num: MathNode
    den: MathNode
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Sqrt(MathNode):
    base: MathNode
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Radical(MathNode):
    base: MathNode
    degree: Optional[MathNode] = None
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class NAry(MathNode):
    '''A big operator. Its sub/sup are limits, not scripts.'''
    op: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Symbol(MathNode):
    value: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Text(MathNode):
    value: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Number(MathNode):
    value: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Operator(MathNode):
    value: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Delimiter(MathNode):
    value: str
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Environment(MathNode):
    '''
    A \\begin{name} ... \\end{name} block, split into rows (at '\\\\') and cells (at '&').
    '''
    name: str
    rows: List[List[Group]] = field(default_factory = list)
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


@dataclass
class Empty(MathNode):
    sub: Optional[MathNode] = None
    sup: Optional[MathNode] = None


NARY_OPERATORS = {
    r'\sum':  '∑',
    r'\prod': '∏',
    r'\int':  '∫',
}

SYMBOLS = {
    r'\alpha':   'α',
    r'\beta':    'β',
    r'\gamma':   'γ',
    r'\delta':   'δ',
    r'\epsilon': 'ε',
    r'\zeta':    'ζ',
    r'\eta':     'η',
    r'\theta':   'θ',
    r'\kappa':   'κ',
    r'\lambda':  'λ',
    r'\mu':      'μ',
    r'\nu':      'ν',
    r'\xi':      'ξ',
    r'\pi':      'π',
    r'\rho':     'ρ',
    r'\sigma':   'σ',
    r'\tau':     'τ',
    r'\phi':     'φ',
    r'\chi':     'χ',
    r'\psi':     'ψ',
    r'\omega':   'ω',
    r'\Gamma':   'Γ',
    r'\Delta':   'Δ',
    r'\Theta':   'Θ',
    r'\Lambda':  'Λ',
    r'\Sigma':   'Σ',
    r'\Phi':     'Φ',
    r'\Omega':   'Ω',
    r'\infty':   '∞',
    r'\partial': '∂',
    r'\nabla':   '∇',
    r'\ldots':   '…',
    r'\cdots':   '⋯',
    r'\langle':  '⟨',
    r'\rangle':  '⟩',
}

OPERATORS = {
    r'\pm':         '±',
    r'\times':      '×',
    r'\div':        '÷',
    r'\cdot':       '·',
    r'\leq':        '≤',
    r'\le':         '≤',
    r'\geq':        '≥',
    r'\ge':         '≥',
    r'\neq':        '≠',
    r'\ne':         '≠',
    r'\approx':     '≈',
    r'\equiv':      '≡',
    r'\in':         '∈',
    r'\rightarrow': '→',
    r'\to':         '→',
    r'\leftarrow':  '←',
    r'\Rightarrow': '⇒',
}

# Commands that only change the font; we keep just their argument.
TRANSPARENT_COMMANDS = frozenset({
    r'\text', r'\textrm', r'\textbf', r'\mathrm', r'\mathbf', r'\mathit', r'\mathsf', r'\mathtt',
    r'\mathcal', r'\mathbb', r'\operatorname', r'\boldsymbol',
})

ROW_BREAK = '\\\\'
CELL_SEPARATOR = '&'

# Commands producing nothing in this grammar (spacing, style switches, rules, and row breaks
# outside an environment).
EMPTY_COMMANDS = frozenset({
    r'\,', r'\;', r'\:', r'\!', r'\ ', ROW_BREAK,
    r'\displaystyle', r'\textstyle', r'\scriptstyle', r'\limits', r'\nolimits', r'\hline',
})

# May come between a big operator and its limits, as in '\sum\limits_{i=1}^n'.
LIMIT_MODIFIERS = frozenset({r'\limits', r'\nolimits'})

WIDE_SPACE_COMMANDS = frozenset({r'\quad', r'\qquad'})

NULL_DELIMITER = '.'

# Environments whose \begin{...} is followed by a column specification, like {cc} or {l|r}.
COLUMN_SPEC_ENVIRONMENTS = frozenset({'array', 'tabular'})


class LatexParser:
    '''
    Holds the token list and a cursor. Each parse_* method consumes tokens from the cursor
    position onwards. Every command has a fixed arity, so there is no backtracking.
    '''

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self._command_handlers: Dict[str, Callable[[str], MathNode]] = {
            r'\frac':  self._parse_frac,
            r'\dfrac': self._parse_frac,
            r'\tfrac': self._parse_frac,
            r'\sqrt':  self._parse_sqrt,
            r'\left':  self._parse_delimiter,
            r'\right': self._parse_delimiter,
            r'\begin': self._parse_environment,
            r'\end':   self._parse_stray_end,
        }

    @property
    def current(self) -> Optional[Token]:
        return self.tokens[self.position] if self.position < len(self.tokens) else None

    def _at(self, kind: TokenKind, text: Optional[str] = None) -> bool:
        token = self.current
        return (token is not None
                and token.kind == kind
                and (text is None or token.text == text))

    def _advance(self) -> Optional[Token]:
        token = self.current
        if token is not None:
            self.position += 1
        return token


    def parse(self) -> Root:
        children = []
        while self.current is not None:
            if self._at(TokenKind.GROUP_CLOSE):
                # Unbalanced '}'; nothing to close, so ignore it.
                self._advance()
            else:
                children.append(self.parse_expression())
        return Root(children)


    def parse_expression(self) -> MathNode:
        return self.parse_scripts(self.parse_primary())


    def parse_primary(self) -> MathNode:
        token = self.current

        if token is None or token.kind in (TokenKind.GROUP_CLOSE,
                                           TokenKind.SUBSCRIPT,
                                           TokenKind.SUPERSCRIPT):
            # Nothing (that we can consume) to act as a base. Any script marker will attach to
            # an empty base in parse_scripts().
            return Empty()

        if token.kind == TokenKind.GROUP_OPEN:
            return self.parse_group()

        self._advance()

        if token.kind == TokenKind.COMMAND:
            return self.parse_command(token.text)

        if token.kind == TokenKind.NUMBER:
            return Number(token.text)

        if token.kind == TokenKind.OPERATOR:
            return Operator(token.text)

        if token.text == '&':
            # Alignment marker; no meaning outside a proper environment.
            return Empty()

        return Text(token.text)


    def parse_group(self) -> Group:
        '''Parses '{ ... }'. A missing '}' is tolerated; the group then runs to the end.'''
        self._advance()
        children = []
        while self.current is not None and not self._at(TokenKind.GROUP_CLOSE):
            children.append(self.parse_expression())
        if self._at(TokenKind.GROUP_CLOSE):
            self._advance()
        return Group(children)


    def parse_next_arg(self) -> MathNode:
        '''
        A command argument (or script): a whole {...} group if there is one, and otherwise the
        single next item, without any scripts of its own.
        '''
        if self._at(TokenKind.GROUP_OPEN):
            return self.parse_group()
        return self.parse_primary()


    def parse_scripts(self, node: MathNode) -> MathNode:
        while True:
            if self._at(TokenKind.SUBSCRIPT):
                self._advance()
                node.sub = self.parse_next_arg()
            elif self._at(TokenKind.SUPERSCRIPT):
                self._advance()
                node.sup = self.parse_next_arg()
            elif self.current is not None and self.current.text in LIMIT_MODIFIERS:
                self._advance()
            else:
                return node


    def parse_command(self, name: str) -> MathNode:
        handler = self._command_handlers.get(name)
        if handler:
            return handler(name)

        if name in NARY_OPERATORS:
            return NAry(NARY_OPERATORS[name])

        if name in SYMBOLS:
            return Symbol(SYMBOLS[name])

        if name in OPERATORS:
            return Operator(OPERATORS[name])

        if name in TRANSPARENT_COMMANDS:
            return self.parse_next_arg()

        if name in EMPTY_COMMANDS:
            return Empty()

        if name in WIDE_SPACE_COMMANDS:
            return Text(' ')

        # Unknown command: keep its name as plain text.
        text = name[1:]
        return Text(text) if text else Empty()


    def _parse_frac(self, _name) -> MathNode:
        num = self.parse_next_arg()
        den = self.parse_next_arg()
        return Frac(num, den)


    def _parse_sqrt(self, _name) -> MathNode:
        if self._at(TokenKind.OPERATOR, '['):
            self._advance()
            degree_children = []
            while self.current is not None and not self._at(TokenKind.OPERATOR, ']'):
                if self._at(TokenKind.GROUP_CLOSE):
                    break
                degree_children.append(self.parse_expression())
            if self._at(TokenKind.OPERATOR, ']'):
                self._advance()
            return Radical(self.parse_next_arg(), Group(degree_children))

        return Sqrt(self.parse_next_arg())


    def _parse_delimiter(self, _name) -> MathNode:
        token = self._advance()
        if token is None:
            return Empty()

        if token.kind == TokenKind.COMMAND:
            glyph = SYMBOLS.get(token.text) or OPERATORS.get(token.text) or token.text[1:]
        else:
            glyph = token.text

        if glyph in ('', NULL_DELIMITER):
            return Empty()
        return Delimiter(glyph)


    def _environment_name(self) -> str:
        if not self._at(TokenKind.GROUP_OPEN):
            return ''
        self._advance()
        name = []
        while self.current is not None and not self._at(TokenKind.GROUP_CLOSE):
            name.append(self._advance().text)
        if self._at(TokenKind.GROUP_CLOSE):
            self._advance()
        return ''.join(name)


    def _parse_environment(self, _name) -> MathNode:
        '''
        Parses '\\begin{name} ... \\end{name}' into rows and cells. A missing \\end is tolerated;
        the environment then runs to the end of the enclosing group.
        '''
        name = self._environment_name()
        if name in COLUMN_SPEC_ENVIRONMENTS and self._at(TokenKind.GROUP_OPEN):
            self.parse_group()

        rows = [[[]]]
        while self.current is not None and not self._at(TokenKind.GROUP_CLOSE):
            if self._at(TokenKind.COMMAND, r'\end'):
                self._advance()
                self._environment_name()
                break
            elif self._at(TokenKind.LITERAL, CELL_SEPARATOR):
                self._advance()
                rows[-1].append([])
            elif self._at(TokenKind.COMMAND, ROW_BREAK):
                self._advance()
                rows.append([[]])
            else:
                rows[-1][-1].append(self.parse_expression())

        if len(rows) > 1 and rows[-1] == [[]]:
            # Trailing '\\' before \end.
            rows.pop()

        return Environment(name, [[Group(cell) for cell in row] for row in rows])


    def _parse_stray_end(self, _name) -> MathNode:
        self._environment_name()
        return Empty()


def parse(latex: str) -> Root:
    return LatexParser(tokenize(latex)).parse()
