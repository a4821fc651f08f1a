'''
# mathpaste

Converts the math in assistant-written Markdown (LaTeX in its various delimiters, and formulas
already rendered by KaTeX/MathJax) into OMML, so that it can be pasted into Microsoft Word as
editable equations.
'''

from .lib.latex_omml import compile_latex
from .lib.mathml_omml import compile_presentation_markup
from .lib.spans import protect_math_spans, restore_math_spans
from .lib.md_converter import convert_markdown, process_content, wrap_html_for_word

__all__ = [
    'compile_latex',
    'compile_presentation_markup',
    'protect_math_spans',
    'restore_math_spans',
    'convert_markdown',
    'process_content',
    'wrap_html_for_word',
]
