'''
# Word Math Extension

The 'mathpaste.word_math' extension lets Markdown documents (particularly those written by AI
assistants) carry LaTeX math in all the usual forms: $...$, $$...$$, \\(...\\), \\[...\\],
\\begin{env}...\\end{env}, '[' and ']' on their own lines, and even bare '(...)' groups that look
like formulas. Math is protected from Markdown before it runs, and afterwards replaced with either:

* OMML (Office Math Markup), for pasting into Microsoft Word (for_clipboard = True); or
* MathML, for previewing in a browser (for_clipboard = False).

Already-rendered KaTeX/MathJax HTML can also be passed through, between the comments
<!--RENDERED_MATH_START--> and <!--RENDERED_MATH_END-->.
'''

from mathpaste.lib import spans
from mathpaste.lib.context import RenderContext
from mathpaste.lib.latex_omml import ENGINE_NATIVE, ENGINES, compile_latex
from mathpaste.lib.progress import Progress
from mathpaste.lib.rendered_math import convert_preserved_math
import markdown
import latex2mathml.converter

import html
import re
from typing import Callable


NAME = 'mathpaste.word_math'  # For error messages

BR_RE = re.compile(r'<br\s*/?>', flags = re.IGNORECASE)


def render_preview(latex: str, block: bool, progress: Progress) -> str:
    '''Converts LaTeX to browser-renderable MathML, for the preview.'''
    try:
        mathml = latex2mathml.converter.convert(latex, display = 'block' if block else 'inline')
    except Exception as e:
        progress.warning(NAME, msg = f'Could not preview "{latex}": {e}')
        return f'<span class="math-error">{html.escape(latex)}</span>'

    css_class = 'math-block' if block else 'math-inline'
    return f'<span class="{css_class}">{mathml}</span>'


def resolve_span(record: spans.SpanRecord, context: RenderContext) -> str:
    if record.kind == spans.SpanKind.RENDERED_MARKUP:
        return convert_preserved_math(record.content, context)

    block = record.kind.is_block
    if context.for_clipboard:
        return compile_latex(record.content, block, context.latex_engine, context.progress)
    return render_preview(record.content, block, context.progress)


def make_resolver(span_map: spans.SpanMap, context: RenderContext) -> Callable[[str], str]:
    return lambda placeholder: resolve_span(span_map[placeholder], context)


class SpanState:
    '''Carries the span map from the preprocessor to the postprocessor, for one conversion.'''
    def __init__(self):
        self.span_map: spans.SpanMap = {}


class WordMathPreprocessor(markdown.preprocessors.Preprocessor):
    def __init__(self, md, state: SpanState, context: RenderContext):
        super().__init__(md)
        self.state = state
        self.context = context

    def run(self, lines):
        # AI output often separates display-math lines with <br>, which would otherwise break
        # the math delimiters apart.
        text = BR_RE.sub('\n', '\n'.join(lines))

        text, self.state.span_map = spans.protect_math_spans(
            text, soft_parentheses = self.context.soft_parentheses)
        return text.split('\n')


class WordMathPostprocessor(markdown.postprocessors.Postprocessor):
    def __init__(self, md, state: SpanState, context: RenderContext):
        super().__init__(md)
        self.state = state
        self.context = context

    def run(self, text):
        span_map = self.state.span_map
        return spans.restore_math_spans(text, span_map, make_resolver(span_map, self.context))


class WordMathExtension(markdown.Extension):
    def __init__(self, **kwargs):
        self.config = {
            'for_clipboard': [
                True,
                'If True, math is converted to OMML (Office Math Markup), so that the HTML output '
                'can be pasted into Microsoft Word as editable equations. If False, math is '
                'converted to MathML, for display in a browser.'
            ],
            'latex_engine': [
                ENGINE_NATIVE,
                f'How LaTeX is converted to OMML: "{ENGINES[0]}" (the built-in parser, the '
                f'default) or "{ENGINES[1]}" (via latex2mathml, falling back to the built-in '
                'parser if that fails).'
            ],
            'soft_parentheses': [
                True,
                'Treat plain "(...)" groups as inline math, if their content looks like a formula '
                '(e.g., "(a+b)" or "(N(d_1))").'
            ],
            'progress': [
                Progress(),
                'An object accepting progress messages.'
            ],
        }
        super().__init__(**kwargs)

        progress = self.getConfig('progress')

        engine = self.getConfig('latex_engine')
        if engine not in ENGINES:
            progress.error(NAME, msg = f'Invalid value "{engine}" for config option "latex_engine"')
            self.setConfig('latex_engine', ENGINE_NATIVE)


    def render_context(self) -> RenderContext:
        return RenderContext(
            for_clipboard    = bool(self.getConfig('for_clipboard')),
            latex_engine     = self.getConfig('latex_engine'),
            soft_parentheses = bool(self.getConfig('soft_parentheses')),
            progress         = self.getConfig('progress'),
        )


    def extendMarkdown(self, md):
        md.registerExtension(self)
        self.state = SpanState()
        context = self.render_context()

        # After whitespace normalisation (30), and before raw HTML blocks are stashed (20).
        md.preprocessors.register(
            WordMathPreprocessor(md, self.state, context),
            'mathpaste-word-math-pre', 25)

        # After raw HTML is restored (30).
        md.postprocessors.register(
            WordMathPostprocessor(md, self.state, context),
            'mathpaste-word-math-post', 25)


    def reset(self):
        if hasattr(self, 'state'):
            self.state.span_map = {}



def makeExtension(**kwargs):
    return WordMathExtension(**kwargs)
