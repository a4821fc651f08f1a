'''
# Math span protection

Before Markdown sees the text, every math span is swapped out for an opaque placeholder, so that
'_' and '*' inside formulas aren't taken as emphasis, '\\' isn't taken as an escape, etc. After
Markdown has done its work, restore_math_spans() puts the (converted) math back.

Spans are found by a fixed sequence of passes. Order matters, because each pass only sees what
earlier passes left behind; e.g., '$$...$$' must be removed before '$...$' is looked for.

1. Already-rendered math, between RENDERED_MATH_START and RENDERED_MATH_END comments;
2. '[' ... ']' on lines of their own, if the content looks like LaTeX;
3. \\begin{env} ... \\end{env};
4. \\[ ... \\];
5. $$ ... $$;
6. \\( ... \\);
7. $ ... $;
8. "Soft" parentheses: a balanced ( ... ) whose content looks like math (see looks_like_math()).

Code (fenced blocks and `...` spans) is set aside before any of this, and put back afterwards, so
that '$' and the like inside code are left alone. A span that would enclose already-rendered math
is not extracted, since the rendered markup has no LaTeX form.
'''

from __future__ import annotations

from dataclasses import dataclass
import enum
import re
from typing import Callable, Dict, Tuple

PLACEHOLDER_PREFIX = 'MATHPASTE'
PLACEHOLDER_SUFFIX = 'PLACEHOLDER'
PLACEHOLDER_RE = re.compile(f'{PLACEHOLDER_PREFIX}[0-9]+{PLACEHOLDER_SUFFIX}')
CODE_PLACEHOLDER_PREFIX = 'MATHPASTECODE'

RENDERED_MATH_START = '<!--RENDERED_MATH_START-->'
RENDERED_MATH_END = '<!--RENDERED_MATH_END-->'


class SpanKind(enum.Enum):
    RENDERED_MARKUP = 'rendered'
    LATEX_BLOCK     = 'latex-block'
    LATEX_INLINE    = 'latex-inline'

    @property
    def is_block(self) -> bool:
        return self == SpanKind.LATEX_BLOCK


@dataclass(frozen = True)
class SpanRecord:
    kind: SpanKind
    content: str


SpanMap = Dict[str, SpanRecord]


FENCED_CODE_RE = re.compile(
    r'^[ \t]*(?P<fence>`{3,}|~{3,})[^\n]*\n.*?^[ \t]*(?P=fence)[ \t]*$',
    flags = re.MULTILINE | re.DOTALL)

CODE_SPAN_RE = re.compile(r'(?<![`\\])(?P<ticks>`+)(?!`)[^\n]+?(?<!`)(?P=ticks)(?!`)')

RENDERED_RE = re.compile(
    f'{re.escape(RENDERED_MATH_START)}(?P<content>.*?){re.escape(RENDERED_MATH_END)}',
    flags = re.DOTALL)

BRACKET_BLOCK_RE = re.compile(
    r'''
    ^ \[ [ \t]* \n          # '[' alone on its line
    (?P<content> .+? )
    \n [ \t]* \] $          # ']' alone on its line
    ''',
    flags = re.VERBOSE | re.DOTALL | re.MULTILINE)

LATEX_INDICATOR_RE = re.compile(r'\\[a-zA-Z]+|[_^]')

ENVIRONMENT_RE = re.compile(
    r'\\begin\{(?P<env>[a-zA-Z*]+)\}(?P<content>.+?)\\end\{(?P=env)\}',
    flags = re.DOTALL)

DISPLAY_BRACKET_RE = re.compile(r'\\\[\s*(?P<content>.+?)\s*\\\]', flags = re.DOTALL)

DOUBLE_DOLLAR_RE = re.compile(r'\$\$(?P<content>.+?)\$\$', flags = re.DOTALL)

INLINE_PAREN_RE = re.compile(r'\\\((?P<content>.+?)\\\)')

SINGLE_DOLLAR_RE = re.compile(
    r'''
    (?<!\\) \$
    (?P<content>
        (?: \\\$ | [^$\n] )+?   # Escaped dollars are allowed inside.
    )
    (?<!\\) \$
    ''',
    flags = re.VERBOSE)


CJK_RE = re.compile('[\u4e00-\u9fff]')
STRONG_MATH_RE = re.compile(r'\\[a-zA-Z]+|[_^=≈≤≥≠]')
FUNCTION_CALL_RE = re.compile(r'\b(N|ln|exp|log|sin|cos|tan|f|g)\s*\(')
ARITHMETIC_RE = re.compile(r'[+\-*/]\s*[\d.a-zA-Z]')


def looks_like_math(content: str) -> bool:
    '''
    Decides whether the content of a plain '(...)' group is a formula. This is a heuristic, tuned
    for AI output that writes things like '(N(d_1))' or '(a+b)' without any math delimiters.
    '''
    if CJK_RE.search(content):
        return False

    return bool(
        STRONG_MATH_RE.search(content)
        or FUNCTION_CALL_RE.search(content)
        or ARITHMETIC_RE.search(content)
    )


def make_placeholder(index: int) -> str:
    # No '_', '*', '`' or '$', which all mean something to Markdown.
    return f'{PLACEHOLDER_PREFIX}{index}{PLACEHOLDER_SUFFIX}'


class SpanProtector:
    '''
    Accumulates the placeholder-to-span mapping for a single piece of text. Create a new instance
    for each conversion.
    '''

    def __init__(self, soft_parentheses: bool = True,
                 is_math: Callable[[str], bool] = looks_like_math):
        self.soft_parentheses = soft_parentheses
        self.is_math = is_math
        self.span_map: SpanMap = {}
        self._counter = 0
        self._code: Dict[str, str] = {}


    def add(self, kind: SpanKind, content: str) -> str:
        placeholder = make_placeholder(self._counter)
        self._counter += 1
        self.span_map[placeholder] = SpanRecord(kind, self._restore_code(self._expand(content)))
        return placeholder


    def _expand(self, content: str) -> str:
        '''
        Replaces placeholders from earlier passes found inside 'content' (e.g., an environment
        inside $$...$$) with their original LaTeX, so that the outer span is self-contained.
        '''
        def replace(match: re.Match) -> str:
            record = self.span_map.pop(match.group(), None)
            return match.group() if record is None else record.content

        return PLACEHOLDER_RE.sub(replace, content)


    def _encloses_rendered(self, content: str) -> bool:
        return any(self.span_map[placeholder].kind == SpanKind.RENDERED_MARKUP
                   for placeholder in PLACEHOLDER_RE.findall(content)
                   if placeholder in self.span_map)


    def _extract(self, kind: SpanKind, content: str, original: str) -> str:
        if self._encloses_rendered(content):
            return original
        return self.add(kind, content)


    def _stash_code(self, match: re.Match) -> str:
        placeholder = f'{CODE_PLACEHOLDER_PREFIX}{len(self._code)}{PLACEHOLDER_SUFFIX}'
        self._code[placeholder] = match.group()
        return placeholder


    def _restore_code(self, text: str) -> str:
        for placeholder, code in self._code.items():
            text = text.replace(placeholder, code)
        return text


    def protect(self, text: str) -> str:
        text = FENCED_CODE_RE.sub(self._stash_code, text)
        text = CODE_SPAN_RE.sub(self._stash_code, text)

        text = RENDERED_RE.sub(
            lambda m: self.add(SpanKind.RENDERED_MARKUP, m.group('content')),
            text)

        text = BRACKET_BLOCK_RE.sub(self._bracket_block, text)

        text = ENVIRONMENT_RE.sub(
            lambda m: self._extract(
                SpanKind.LATEX_BLOCK,
                f'\\begin{{{m.group("env")}}}\n{m.group("content").strip()}\n'
                f'\\end{{{m.group("env")}}}',
                m.group()),
            text)

        for regex, kind in [(DISPLAY_BRACKET_RE, SpanKind.LATEX_BLOCK),
                            (DOUBLE_DOLLAR_RE,   SpanKind.LATEX_BLOCK),
                            (INLINE_PAREN_RE,    SpanKind.LATEX_INLINE),
                            (SINGLE_DOLLAR_RE,   SpanKind.LATEX_INLINE)]:
            text = regex.sub(
                lambda m, kind = kind: self._extract(kind, m.group('content').strip(), m.group()),
                text)

        if self.soft_parentheses:
            text = self._soft_parentheses(text)

        return self._restore_code(text)


    def _bracket_block(self, match: re.Match) -> str:
        content = match.group('content')
        if LATEX_INDICATOR_RE.search(content):
            return self._extract(SpanKind.LATEX_BLOCK, content.strip(), match.group())
        # Probably just a literal list or array.
        return match.group()


    def _soft_parentheses(self, text: str) -> str:
        '''
        Finds balanced '(...)' groups by counting nesting depth (which a regex can't do), and
        replaces those whose content passes the is_math test.
        '''
        result = []
        buffer = []
        depth = 0

        for i, ch in enumerate(text):
            if ch == '(':
                if depth == 0:
                    if i > 0 and text[i - 1] == ']':
                        # Markdown link target, as in '[text](url)'.
                        result.append(ch)
                        continue
                    buffer = []
                else:
                    buffer.append(ch)
                depth += 1

            elif ch == ')' and depth > 0:
                depth -= 1
                if depth == 0:
                    content = ''.join(buffer)
                    if self.is_math(content):
                        result.append(self._extract(SpanKind.LATEX_INLINE, content,
                                                    f'({content})'))
                    else:
                        result.append(f'({content})')
                    buffer = []
                else:
                    buffer.append(ch)

            elif depth > 0:
                buffer.append(ch)

            else:
                result.append(ch)

        if depth > 0:
            # Unterminated; give it back as it was.
            result.append('(' + ''.join(buffer))

        return ''.join(result)


def protect_math_spans(text: str, soft_parentheses: bool = True) -> Tuple[str, SpanMap]:
    '''
    Returns the text with all math spans replaced by placeholders, and a mapping from each
    placeholder to the span it stands for.
    '''
    protector = SpanProtector(soft_parentheses = soft_parentheses)
    carrier = protector.protect(text)
    return carrier, protector.span_map


def restore_math_spans(rendered: str, span_map: SpanMap, resolver: Callable[[str], str]) -> str:
    '''
    Substitutes each placeholder in 'rendered' with resolver(placeholder). Placeholders are
    matched as literal strings, not patterns.
    '''
    replacements = [(placeholder, resolver(placeholder)) for placeholder in span_map]
    for placeholder, replacement in replacements:
        rendered = rendered.replace(placeholder, replacement)
    return rendered
