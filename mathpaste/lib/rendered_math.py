'''
# Rendered math

Chat sites show math already rendered by KaTeX or MathJax. When such HTML is copied, we want Word
math, not a tangle of spans and SVG paths. This module digs out whatever the renderer left behind
(its MathML, or the original TeX in an annotation or attribute) and converts that.
'''

from __future__ import annotations

from . import omml
from .context import RenderContext
from .latex_omml import compile_latex
from .mathml_omml import compile_presentation_markup, extract_math_markup
from .spans import SpanKind, SpanRecord, make_placeholder, restore_math_spans

import lxml.html
from lxml import etree

import re
from typing import Optional, Tuple

NAME = 'mathpaste.rendered'  # For error messages

DISPLAY_RE = re.compile(
    r'''katex-display|MathJax_Display|mjx-container[^>]+display=("|')?(true|block)''',
    flags = re.IGNORECASE)

# Where renderers keep the TeX source, in order of preference.
LATEX_SOURCES = [
    ('annotation[encoding*="tex"]',                 None),
    ('[data-tex]',                                  'data-tex'),
    ('script[type^="math/tex"]',                    None),
    ('[aria-label]',                                'aria-label'),
    ('[alttext]',                                   'alttext'),
    ('[data-latex]',                                'data-latex'),
]

PLAIN_TEXT_ATTRS = ['aria-label', 'alttext', 'data-latex']
MAX_PLAIN_TEXT = 120

# Top-level containers produced by KaTeX and MathJax (v2 and v3), display forms first.
CONTAINER_SELECTORS = [
    '.katex-display',
    '.MathJax_Display',
    'mjx-container[display="true"]',
    '.katex',
    '.MathJax',
    'mjx-container',
]

REMOVED_ELEMENTS = 'script, style, meta, link'


def _parse_fragment(html: str) -> lxml.html.HtmlElement:
    if not html.strip():
        return lxml.html.Element('div')
    return lxml.html.fragment_fromstring(html, create_parent = 'div')


def _collapse(text: str) -> str:
    return re.sub(r'\s+', ' ', text).strip()


def extract_latex_from_math_html(html: str) -> Tuple[Optional[str], bool]:
    '''
    Returns the TeX source embedded in a rendered formula (or None), and whether the formula is
    display (block) math.
    '''
    display_mode = DISPLAY_RE.search(html) is not None
    root = _parse_fragment(html)

    for selector, attr in LATEX_SOURCES:
        for element in root.cssselect(selector):
            value = element.get(attr) if attr else element.text_content()
            if value and value.strip():
                if element.tag == 'script' and 'display' in element.get('type', ''):
                    display_mode = True
                return value.strip(), display_mode

    return None, display_mode


def extract_math_plain_text(html: str) -> Optional[str]:
    '''Readable text for a formula we cannot otherwise convert (without SVG path data, etc.).'''
    root = _parse_fragment(html)
    for attr in PLAIN_TEXT_ATTRS:
        for element in root.xpath(f'descendant-or-self::*[@{attr}]'):
            value = element.get(attr).strip()
            if value:
                return value

    plain = _collapse(root.text_content())
    if plain and len(plain) <= MAX_PLAIN_TEXT:
        return plain
    return None


def _parse_math_markup(html: str) -> Optional[etree._Element]:
    markup = extract_math_markup(html)
    if markup is None:
        return None
    try:
        return etree.fromstring(markup.encode('utf-8'))
    except etree.XMLSyntaxError:
        return None


def convert_preserved_math(html: str, context: RenderContext) -> str:
    '''
    Converts an already-rendered formula. For the preview, it is kept as it is. For the clipboard,
    we use (in order of preference) its MathML, its TeX source, or its readable text.
    '''
    if not context.for_clipboard:
        return f'<span class="preserved-math">{html}</span>'

    latex, display_mode = extract_latex_from_math_html(html)
    progress = context.progress

    math_element = _parse_math_markup(html)
    if math_element is not None:
        return compile_presentation_markup(math_element,
                                           display_mode = True if display_mode else None,
                                           progress = progress)

    if latex:
        return compile_latex(latex, display_mode, context.latex_engine, progress)

    plain = extract_math_plain_text(html)
    if plain:
        return compile_latex(plain, display_mode, context.latex_engine, progress)

    progress.warning(NAME, msg = 'Could not find any content in rendered math')
    return omml.wrap_for_word(omml.fallback(''), display_mode)


def _is_display(element: lxml.html.HtmlElement) -> bool:
    classes = element.get('class', '').split()
    return ('katex-display' in classes
            or 'MathJax_Display' in classes
            or element.get('display') in ('true', 'block'))


def _inner_html(root: lxml.html.HtmlElement) -> str:
    return (root.text or '') + ''.join(lxml.html.tostring(child, encoding = 'unicode')
                                       for child in root)


def convert_html_for_clipboard(html: str, context: RenderContext) -> str:
    '''
    Replaces each KaTeX/MathJax formula in a piece of HTML with OMML, so that the HTML can be
    placed on the clipboard for Word.
    '''
    context = context.clipboard()
    root = _parse_fragment(html)

    for element in root.cssselect(REMOVED_ELEMENTS):
        element.drop_tree()

    processed = set()
    span_map = {}
    converted = {}

    for selector in CONTAINER_SELECTORS:
        for element in root.cssselect(selector):
            if element in processed or any(a in processed for a in element.iterancestors()):
                continue

            math_html = lxml.html.tostring(element, encoding = 'unicode', with_tail = False)
            placeholder = make_placeholder(len(span_map))
            span_map[placeholder] = SpanRecord(SpanKind.RENDERED_MARKUP, math_html)
            converted[placeholder] = convert_preserved_math(math_html, context)

            wrapper = lxml.html.Element('div' if _is_display(element) else 'span')
            wrapper.text = placeholder
            wrapper.tail = element.tail
            element.tail = None
            element.getparent().replace(element, wrapper)
            processed.add(element)

    return restore_math_spans(_inner_html(root), span_map, converted.__getitem__)
