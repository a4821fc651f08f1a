'''
# Markdown conversion

Turns assistant-written Markdown into HTML whose math is Word-ready (or browser-ready, for the
preview), and produces the companion pieces needed for the clipboard: a complete Word-compatible
HTML document, and a plain-text rendition.
'''

from __future__ import annotations

from ..ext.word_math import WordMathExtension
from .context import RenderContext
from .latex_omml import ENGINE_NATIVE
from .progress import Progress
from .rendered_math import convert_html_for_clipboard

import lxml.html
import markdown

from dataclasses import dataclass
import re
from typing import Optional

MARKDOWN = 'markdown'
HTML = 'html'
SOURCE_TYPES = (MARKDOWN, HTML)

# GitHub-flavoured behaviour, as far as Python-Markdown offers it.
STANDARD_EXTENSIONS = ['tables', 'fenced_code', 'nl2br', 'sane_lists', 'pymdownx.tilde']

WORD_DOCUMENT = '''<!DOCTYPE html>
<html xmlns:o="urn:schemas-microsoft-com:office:office"
      xmlns:w="urn:schemas-microsoft-com:office:word"
      xmlns:m="http://schemas.openxmlformats.org/officeDocument/2006/math"
      xmlns="http://www.w3.org/1999/xhtml">
<head>
<meta http-equiv="Content-Type" content="text/html; charset=utf-8">
<meta name="ProgId" content="Word.Document">
<meta name="Generator" content="mathpaste">
</head>
<body>
<!--StartFragment-->
{html}
<!--EndFragment-->
</body>
</html>'''

# Applied in order. Images come before links, since '![alt](src)' also matches the link pattern.
PLAIN_TEXT_RULES = [
    (re.compile(r'```.*?```', flags = re.DOTALL), '[code block]'),
    (re.compile(r'`([^`]+)`'),                    r'\1'),
    (re.compile(r'!\[([^\]]*)\]\([^)]+\)'),       r'[image: \1]'),
    (re.compile(r'\[([^\]]+)\]\([^)]+\)'),        r'\1'),
    (re.compile(r'#{1,6}[ \t]+'),                 ''),
    (re.compile(r'\*\*([^*]+)\*\*'),              r'\1'),
    (re.compile(r'\*([^*]+)\*'),                  r'\1'),
    (re.compile(r'__([^_]+)__'),                  r'\1'),
    (re.compile(r'_([^_]+)_'),                    r'\1'),
    (re.compile(r'~~([^~]+)~~'),                  r'\1'),
    (re.compile(r'^[ \t]*[-*+]\s+', flags = re.MULTILINE), '• '),
    (re.compile(r'^[ \t]*\d+\.\s+', flags = re.MULTILINE), ''),
    (re.compile(r'\n{3,}'),                       '\n\n'),
]


@dataclass
class ConvertedContent:
    html: str
    plain_text: str
    has_formula: bool


def convert_markdown(text: str,
                     for_clipboard: bool = False,
                     *,
                     latex_engine: str = ENGINE_NATIVE,
                     soft_parentheses: bool = True,
                     progress: Optional[Progress] = None) -> str:
    '''
    Converts Markdown to an HTML fragment. Math becomes OMML if for_clipboard is True, or MathML
    otherwise.
    '''
    md = markdown.Markdown(
        extensions = [
            *STANDARD_EXTENSIONS,
            WordMathExtension(
                for_clipboard    = for_clipboard,
                latex_engine     = latex_engine,
                soft_parentheses = soft_parentheses,
                progress         = progress or Progress(),
            )
        ]
    )
    return md.convert(text)


def is_complete_document(html: str) -> bool:
    stripped = html.strip()
    return stripped.startswith('<!DOCTYPE') or stripped.startswith('<html')


def wrap_html_for_word(html: str) -> str:
    '''
    Wraps an HTML fragment in a document that Word recognises as its own, so that OMML inside is
    taken as equations. A complete document is returned unchanged.
    '''
    if is_complete_document(html):
        return html
    return WORD_DOCUMENT.format(html = html)


def extract_plain_text(markdown_text: str) -> str:
    '''The text/plain companion to the HTML, with Markdown syntax removed.'''
    text = markdown_text
    for regex, replacement in PLAIN_TEXT_RULES:
        text = regex.sub(replacement, text)
    return text.strip()


def html_plain_text(html: str) -> str:
    if not html.strip():
        return ''
    return lxml.html.fragment_fromstring(html, create_parent = 'div').text_content()


def has_formula(content: str) -> bool:
    return '$' in content or '\\(' in content or '\\[' in content


def process_content(content: str,
                    source_type: str = MARKDOWN,
                    *,
                    latex_engine: str = ENGINE_NATIVE,
                    soft_parentheses: bool = True,
                    progress: Optional[Progress] = None) -> ConvertedContent:
    '''
    Prepares content for the clipboard. Markdown is converted with its math as OMML; HTML is
    searched for already-rendered math, which is converted in place.
    '''
    progress = progress or Progress()
    if source_type not in SOURCE_TYPES:
        raise ValueError(f'Unknown source type "{source_type}"; expected one of {SOURCE_TYPES}')

    if source_type == MARKDOWN:
        html = convert_markdown(content, True,
                                latex_engine = latex_engine,
                                soft_parentheses = soft_parentheses,
                                progress = progress)
        plain_text = extract_plain_text(content)

    else:
        context = RenderContext(for_clipboard = True,
                                latex_engine = latex_engine,
                                soft_parentheses = soft_parentheses,
                                progress = progress)
        html = convert_html_for_clipboard(content, context) if content.strip() else ''
        plain_text = html_plain_text(content)

    return ConvertedContent(html = html,
                            plain_text = plain_text,
                            has_formula = has_formula(content))
