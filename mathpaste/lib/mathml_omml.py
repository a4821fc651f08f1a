'''
# MathML to OMML

Converts presentation MathML (as produced by KaTeX, MathJax or latex2mathml) into Office Math
Markup. Only the element subset these renderers actually emit is understood. Unknown elements are
not an error; their children are converted in their place.
'''

from __future__ import annotations

from . import omml
from .progress import Progress

from lxml import etree

import re
from typing import Callable, Dict, List, Optional, Union

NAME = 'mathpaste.mathml'  # For error messages

# Big-operator glyphs which, under/over-scripted, become <m:nary>.
NARY_CHARS = frozenset('∑∏∫∮∯∰∱∲∳')

# Elements whose content is not part of the rendered formula.
IGNORED_ELEMENTS = frozenset({'annotation', 'annotation-xml', 'none', 'mprescripts'})

MATH_ELEMENT_RE = re.compile(r'<(?:[a-zA-Z0-9]+:)?math\b.*?</(?:[a-zA-Z0-9]+:)?math\s*>',
                             flags = re.DOTALL)


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname.lower()


def text_content(element: etree._Element) -> str:
    return ''.join(element.itertext()).strip()


def child_elements(element: etree._Element) -> List[etree._Element]:
    # Skips comments and processing instructions, whose tag is not a string.
    return [child for child in element if isinstance(child.tag, str)]


class MathMLConverter:
    '''
    Walks a MathML element tree. Each _convert_* method returns a list of OMML nodes, since some
    constructs (rows, fences) contribute several siblings to their parent.
    '''

    def __init__(self, progress: Progress):
        self.progress = progress
        self._converters: Dict[str, Callable[[etree._Element], List[omml.Node]]] = {
            'mrow':       self._convert_children,
            'mstyle':     self._convert_children,
            'mpadded':    self._convert_children,
            'mphantom':   self._convert_children,
            'merror':     self._convert_children,
            'mi':         self._convert_token,
            'mn':         self._convert_token,
            'mo':         self._convert_token,
            'mtext':      self._convert_token,
            'ms':         self._convert_token,
            'msup':       self._convert_msup,
            'msub':       self._convert_msub,
            'msubsup':    self._convert_msubsup,
            'mfrac':      self._convert_mfrac,
            'msqrt':      self._convert_msqrt,
            'mroot':      self._convert_mroot,
            'munder':     self._convert_munder,
            'mover':      self._convert_mover,
            'munderover': self._convert_munderover,
            'mfenced':    self._convert_mfenced,
            'mtable':     self._convert_mtable,
            'mspace':     lambda _element: [omml.run(' ')],
            'semantics':  self._convert_semantics,
        }


    def convert_math(self, math_element: etree._Element) -> omml.Node:
        return omml.omath(self._convert_children(math_element))


    def convert(self, element: etree._Element) -> List[omml.Node]:
        name = local_name(element)
        if name in IGNORED_ELEMENTS:
            return []

        converter = self._converters.get(name)
        if converter is None:
            self.progress.warning(NAME, msg = f'Unknown MathML element <{name}>')
            return self._convert_children(element)

        return converter(element)


    def _convert_children(self, element: etree._Element) -> List[omml.Node]:
        result = []
        if element.text and element.text.strip():
            result.append(omml.run(element.text.strip()))

        for child in element:
            if isinstance(child.tag, str):
                result.extend(self.convert(child))
            if child.tail and child.tail.strip():
                result.append(omml.run(child.tail.strip()))

        return result


    def _convert_token(self, element: etree._Element) -> List[omml.Node]:
        return [omml.run(text_content(element))]


    def _operands(self, element: etree._Element, count: int) -> Optional[List[List[omml.Node]]]:
        children = child_elements(element)
        if len(children) < count:
            return None
        return [self.convert(child) for child in children[:count]]


    def _convert_msup(self, element):
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        base, sup = operands
        return [omml.scripts(base, sup = sup)]


    def _convert_msub(self, element):
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        base, sub = operands
        return [omml.scripts(base, sub = sub)]


    def _convert_msubsup(self, element):
        operands = self._operands(element, 3)
        if operands is None:
            return [omml.run('')]
        base, sub, sup = operands
        return [omml.scripts(base, sub = sub, sup = sup)]


    def _convert_mfrac(self, element):
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        num, den = operands
        return [omml.fraction(num, den)]


    def _convert_msqrt(self, element):
        return [omml.radical(self._convert_children(element), hide_degree = True)]


    def _convert_mroot(self, element):
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        base, degree = operands
        return [omml.radical(base, degree)]


    @staticmethod
    def _nary_char(base_element: etree._Element) -> Optional[str]:
        text = text_content(base_element)
        return text if text in NARY_CHARS else None


    def _convert_munder(self, element):
        children = child_elements(element)
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        base, under = operands

        char = self._nary_char(children[0])
        if char:
            return [omml.nary(char, sub = under, lim_loc = 'undOver')]
        return [omml.lim_low(base, under)]


    def _convert_mover(self, element):
        children = child_elements(element)
        operands = self._operands(element, 2)
        if operands is None:
            return [omml.run('')]
        base, over = operands

        char = self._nary_char(children[0])
        if char:
            return [omml.nary(char, sup = over, lim_loc = 'undOver')]

        over_text = text_content(children[1])
        if len(over_text) == 1:
            # A single character over something is an accent (hat, bar, tilde, dot, arrow...).
            return [omml.accent(base, over_text)]
        return [omml.lim_upp(base, over)]


    def _convert_munderover(self, element):
        children = child_elements(element)
        operands = self._operands(element, 3)
        if operands is None:
            return [omml.run('')]
        base, under, over = operands

        char = self._nary_char(children[0])
        if char:
            return [omml.nary(char, sub = under, sup = over, lim_loc = 'undOver')]
        return [omml.lim_low(omml.lim_upp(base, over), under)]


    def _convert_mfenced(self, element):
        return [
            omml.run(element.get('open', '(')),
            *self._convert_children(element),
            omml.run(element.get('close', ')')),
        ]


    def _convert_mtable(self, element):
        rows = []
        for row in child_elements(element):
            if local_name(row) not in ('mtr', 'mlabeledtr'):
                continue
            cells = [cell for cell in child_elements(row) if local_name(cell) == 'mtd']
            if local_name(row) == 'mlabeledtr':
                cells = cells[1:]  # The first cell is the equation label.
            rows.append([self._convert_children(cell) for cell in cells])
        return [omml.matrix(rows)]


    def _convert_semantics(self, element):
        # <semantics> pairs the presentation form (first) with annotations (e.g., the TeX source).
        children = child_elements(element)
        return self.convert(children[0]) if children else []


def find_math_element(root: etree._Element) -> Optional[etree._Element]:
    if local_name(root) == 'math':
        return root
    for element in root.iter():
        if isinstance(element.tag, str) and local_name(element) == 'math':
            return element
    return None


def extract_math_markup(html: str) -> Optional[str]:
    '''Finds the first '<math>...</math>' in a piece of (possibly non-XML) HTML.'''
    match = MATH_ELEMENT_RE.search(html)
    return match.group() if match else None


def compile_presentation_markup(tree: Union[str, etree._Element],
                                display_mode: Optional[bool] = None,
                                progress: Optional[Progress] = None) -> str:
    '''
    Converts MathML (either a string or an already-parsed lxml element) into OMML wrapped for
    Word. If display_mode is None, it is taken from the <math display="..."> attribute.

    This never raises. Markup that cannot be parsed is reduced to its text content, as a single
    run.
    '''
    progress = progress or Progress()
    raw = tree if isinstance(tree, str) else None

    try:
        if isinstance(tree, str):
            tree = etree.fromstring(tree.strip().encode('utf-8'))

        math_element = find_math_element(tree)
        if math_element is None:
            progress.warning(NAME, msg = 'No <math> element found')
            return omml.wrap_for_word(omml.fallback(text_content(tree)), bool(display_mode))

        if display_mode is None:
            display_mode = math_element.get('display') == 'block'

        node = MathMLConverter(progress).convert_math(math_element)
        return omml.wrap_for_word(omml.render(node), display_mode)

    except etree.XMLSyntaxError as e:
        progress.warning(NAME, msg = f'Malformed MathML ({e}); keeping its text only')
        return omml.wrap_for_word(omml.fallback(omml.strip_tags(raw or '')), bool(display_mode))

    except Exception as e:
        progress.error(NAME, exception = e, code = raw)
        if raw is not None:
            text = omml.strip_tags(raw)
        elif isinstance(tree, etree._Element):
            text = text_content(tree)
        else:
            text = ''
        return omml.wrap_for_word(omml.fallback(text), bool(display_mode))
