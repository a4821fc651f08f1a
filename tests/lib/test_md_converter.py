from ..util.mock_progress import MockProgress
from mathpaste.lib import omml
from mathpaste.lib.latex_omml import compile_latex
from mathpaste.lib.md_converter import (ConvertedContent, convert_markdown, extract_plain_text,
                                        process_content, wrap_html_for_word)

import unittest
from hamcrest import (assert_that, contains_string, ends_with, has_properties, is_, is_not,
                      starts_with)

from textwrap import dedent


NS = omml.OMML_NAMESPACE

KATEX = (
    '<span class="katex"><span class="katex-mathml">'
    '<math xmlns="http://www.w3.org/1998/Math/MathML"><semantics>'
    '<mrow><mi>y</mi></mrow>'
    '<annotation encoding="application/x-tex">y</annotation>'
    '</semantics></math></span><span class="katex-html">y</span></span>'
)


class MdConverterTestCase(unittest.TestCase):

    def test_convert_markdown_preview(self):
        html = convert_markdown('Let $x$ be.', progress = MockProgress())
        assert_that(html, starts_with('<p>Let <span class="math-inline"><math'))


    def test_convert_markdown_clipboard(self):
        html = convert_markdown('Let $x$ be.', True, progress = MockProgress())
        assert_that(html, is_(f'<p>Let {compile_latex("x")} be.</p>'))


    def test_convert_markdown_extensions(self):
        html = convert_markdown(
            dedent(
                '''
                | A | B |
                |---|---|
                | $x$ | ~~y~~ |

                ```
                code
                ```

                line one
                line two
                '''),
            True,
            progress = MockProgress())

        assert_that(html, contains_string('<table>'))
        assert_that(html, contains_string(f'<td>{compile_latex("x")}</td>'))
        assert_that(html, contains_string('<del>y</del>'))
        assert_that(html, contains_string('<pre><code>code\n</code></pre>'))
        assert_that(html, contains_string('line one<br />\nline two'))


    def test_convert_markdown_code_untouched(self):
        html = convert_markdown(
            dedent(
                '''
                Call `price($a$)` first.

                ```
                total = $x$ + (a+b)
                ```
                '''),
            True,
            progress = MockProgress())

        assert_that(html, contains_string('<code>price($a$)</code>'))
        assert_that(html, contains_string('<pre><code>total = $x$ + (a+b)\n</code></pre>'))
        assert_that(html, is_not(contains_string('m:oMath')))


    def test_convert_markdown_options(self):
        progress = MockProgress()
        html = convert_markdown('See (a+b) and $\\frac{1}{2}$.', True,
                                latex_engine = 'mathml',
                                soft_parentheses = False,
                                progress = progress)
        assert_that(html, contains_string('(a+b)'))
        assert_that(html, contains_string('<m:f>'))


    def test_wrap_html_for_word(self):
        wrapped = wrap_html_for_word('<p>x</p>')
        assert_that(wrapped, starts_with('<!DOCTYPE html>'))
        assert_that(wrapped, contains_string(f'xmlns:m="{NS}"'))
        assert_that(wrapped, contains_string('xmlns:w="urn:schemas-microsoft-com:office:word"'))
        assert_that(wrapped, contains_string('<meta name="ProgId" content="Word.Document">'))
        assert_that(wrapped, contains_string('<!--StartFragment-->\n<p>x</p>\n<!--EndFragment-->'))
        assert_that(wrapped, ends_with('</html>'))


    def test_wrap_complete_document_unchanged(self):
        for doc in ['<!DOCTYPE html><html><body>x</body></html>', '  <html><body/></html>']:
            assert_that(wrap_html_for_word(doc), is_(doc))


    def test_extract_plain_text(self):
        assert_that(
            extract_plain_text(dedent(
                '''
                # Title

                Some **bold**, *italic*, __strong__, _em_ and ~~struck~~ text with `code`.

                ![diagram](d.png) and [a link](http://example.com).

                ```python
                print(1)
                ```



                1. first
                2. second
                - bullet
                ''')),
            is_(dedent(
                '''\
                Title

                Some bold, italic, strong, em and struck text with code.

                [image: diagram] and a link.

                [code block]

                first
                second
                • bullet''')))


    def test_process_markdown(self):
        content = process_content('**Area** is $\\pi r^2$.', progress = MockProgress())
        assert_that(content, has_properties(plain_text = 'Area is $\\pi r^2$.',
                                            has_formula = True))
        assert_that(content.html, starts_with('<p><strong>Area</strong> is <m:oMath '))


    def test_process_html(self):
        content = process_content(f'<p>Value {KATEX}.</p>', 'html', progress = MockProgress())
        assert_that(content, has_properties(plain_text = 'Value yyy.', has_formula = False))
        assert_that(content.html, starts_with(f'<p>Value <span><m:oMath xmlns:m="{NS}">'))
        assert_that(content.html, is_not(contains_string('katex')))


    def test_process_empty_html(self):
        assert_that(
            process_content('', 'html', progress = MockProgress()),
            is_(ConvertedContent(html = '', plain_text = '', has_formula = False)))


    def test_process_has_formula(self):
        for text, expected in [('a \\(x\\)', True), ('\\[x\\]', True), ('$5', True),
                               ('no math', False)]:
            assert_that(process_content(text, progress = MockProgress()).has_formula,
                        is_(expected))


    def test_process_unknown_type(self):
        with self.assertRaises(ValueError):
            process_content('x', 'pdf')
