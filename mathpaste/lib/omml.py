'''
# Office Math Markup

The tree both math paths lower into: plain tag/attribute/children nodes whose tags are already
prefixed with 'm:'. The tree is rendered to text by hand (rather than via an XML library), because
Word is picky about the exact shape: empty elements must self-close, all five XML metacharacters
must be escaped, and the 'm' namespace must be declared exactly once, on the outermost element.
'''

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Dict, Iterable, List, Optional, Union

OMML_NAMESPACE = 'http://schemas.openxmlformats.org/officeDocument/2006/math'

_XML_ESCAPES = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&apos;',
}
_XML_ESCAPE_RE = re.compile('[&<>"\']')

_NAMESPACE_DECL_RE = re.compile(r'\s+xmlns:m="[^"]*"', flags = re.IGNORECASE)
_OUTER_OMATH_RE = re.compile(r'^<m:oMath\b[^>]*>(?P<inner>.*)</m:oMath>$',
                             flags = re.DOTALL | re.IGNORECASE)
_EMPTY_OMATH_RE = re.compile(r'^<m:oMath\b[^>]*/>$', flags = re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]+>')


@dataclass
class Node:
    tag: str
    attrs: Dict[str, str] = field(default_factory = dict)
    children: List[Union[Node, str]] = field(default_factory = list)

    def text_content(self) -> str:
        return ''.join(child if isinstance(child, str) else child.text_content()
                       for child in self.children)


Content = Union[Node, Iterable[Node], None]


def _nodes(content: Content) -> List[Node]:
    if content is None:
        return []
    if isinstance(content, Node):
        return [content]
    return list(content)


def element(tag: str, content: Content = None, **attrs: str) -> Node:
    return Node(f'm:{tag}',
                {f'm:{k}': v for k, v in attrs.items()},
                _nodes(content))


def prop(tag: str, val: str) -> Node:
    '''A property element, like <m:chr m:val="∑"/>.'''
    return element(tag, val = val)


def run(text: str, plain: bool = False) -> Node:
    children: List[Union[Node, str]] = []
    if plain:
        children.append(element('rPr', prop('sty', 'p')))

    t = Node('m:t', {}, [text] if text else [])
    if text != text.strip():
        t.attrs['xml:space'] = 'preserve'
    children.append(t)
    return Node('m:r', {}, children)


def omath(content: Content) -> Node:
    return element('oMath', content)


def fraction(num: Content, den: Content) -> Node:
    return element('f', [element('num', num), element('den', den)])


def radical(base: Content, degree: Content = None, hide_degree: bool = False) -> Node:
    children = []
    if hide_degree:
        children.append(element('radPr', prop('degHide', '1')))
    children.append(element('deg', degree))
    children.append(element('e', base))
    return element('rad', children)


def scripts(base: Content, sub: Content = None, sup: Content = None) -> Node:
    '''
    Wraps 'base' in whichever of <m:sSub>, <m:sSup> or <m:sSubSup> matches the scripts supplied.
    (With neither, the result is just <m:e>.)
    '''
    e = element('e', base)
    if sub is not None and sup is not None:
        return element('sSubSup', [e, element('sub', sub), element('sup', sup)])
    elif sub is not None:
        return element('sSub', [e, element('sub', sub)])
    elif sup is not None:
        return element('sSup', [e, element('sup', sup)])
    return e


def nary(char: str, sub: Content = None, sup: Content = None, body: Content = None,
         lim_loc: Optional[str] = None) -> Node:
    props = [prop('chr', char)]
    if lim_loc:
        props.append(prop('limLoc', lim_loc))
    if sub is None:
        props.append(prop('subHide', '1'))
    if sup is None:
        props.append(prop('supHide', '1'))

    return element('nary', [
        element('naryPr', props),
        element('sub', sub),
        element('sup', sup),
        element('e', body),
    ])


def lim_low(base: Content, lim: Content) -> Node:
    return element('limLow', [element('e', base), element('lim', lim)])


def lim_upp(base: Content, lim: Content) -> Node:
    return element('limUpp', [element('e', base), element('lim', lim)])


def accent(base: Content, char: str) -> Node:
    return element('acc', [element('accPr', prop('chr', char)), element('e', base)])


def matrix(rows: Iterable[Iterable[Content]]) -> Node:
    return element('m', [
        element('mr', [element('e', cell) for cell in row])
        for row in rows
    ])


def equation_array(rows: Iterable[Content]) -> Node:
    '''One equation per row, stacked, as for 'align' or 'gather'.'''
    return element('eqArr', [element('e', row) for row in rows])


def escape(text: str) -> str:
    return _XML_ESCAPE_RE.sub(lambda match: _XML_ESCAPES[match.group()], text)


def render(node: Node) -> str:
    attrs = ''.join(f' {k}="{escape(v)}"' for k, v in node.attrs.items())
    if not node.children:
        return f'<{node.tag}{attrs}/>'

    inner = ''.join(escape(child) if isinstance(child, str) else render(child)
                    for child in node.children)
    return f'<{node.tag}{attrs}>{inner}</{node.tag}>'


def fallback(text: str) -> str:
    '''The last resort: the given text as a single, unstructured run.'''
    return render(omath(run(text)))


def strip_tags(markup: str) -> str:
    return _TAG_RE.sub('', markup).strip()


def wrap_for_word(omml: str, block: bool = False) -> str:
    '''
    Places rendered OMML in the container Word expects: <m:oMathPara><m:oMath> for display math,
    or just <m:oMath> for inline math. Any existing 'm' namespace declarations (and any existing
    outer <m:oMath>) are removed first, so the namespace is declared once, on the outside.
    '''
    cleaned = _NAMESPACE_DECL_RE.sub('', omml).strip()
    if _EMPTY_OMATH_RE.match(cleaned):
        inner = ''
    else:
        match = _OUTER_OMATH_RE.match(cleaned)
        inner = match.group('inner') if match else cleaned

    if block:
        return (f'<m:oMathPara xmlns:m="{OMML_NAMESPACE}">'
                f'{f"<m:oMath>{inner}</m:oMath>" if inner else "<m:oMath/>"}'
                '</m:oMathPara>')

    if not inner:
        return f'<m:oMath xmlns:m="{OMML_NAMESPACE}"/>'
    return f'<m:oMath xmlns:m="{OMML_NAMESPACE}">{inner}</m:oMath>'
