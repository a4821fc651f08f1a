from ..util.mock_progress import MockProgress
from mathpaste.lib import omml
from mathpaste.lib.mathml_omml import compile_presentation_markup, extract_math_markup

import unittest
from hamcrest import (assert_that, contains_exactly, empty, has_length, is_, not_, none,
                      starts_with)

from lxml import etree


NS = omml.OMML_NAMESPACE
M = f'{{{NS}}}'
MATHML_NS = 'http://www.w3.org/1998/Math/MathML'


def parse_xml(markup):
    return etree.fromstring(markup.encode('utf-8'))


def texts(element, path):
    return [t.text for t in element.iterfind(path)]


class MathMLOmmlTestCase(unittest.TestCase):

    def convert(self, mathml, display_mode = None):
        self.progress = MockProgress()
        return compile_presentation_markup(mathml, display_mode, progress = self.progress)


    def test_tokens(self):
        root = parse_xml(self.convert(
            f'<math xmlns="{MATHML_NS}"><mi>x</mi><mo>+</mo><mn>12</mn></math>'))
        assert_that(texts(root, f'{M}r/{M}t'), contains_exactly('x', '+', '12'))
        assert_that(self.progress.warning_messages, empty())


    def test_without_namespace(self):
        root = parse_xml(self.convert('<math><mi>y</mi></math>'))
        assert_that(texts(root, f'{M}r/{M}t'), contains_exactly('y'))


    def test_fraction_and_scripts(self):
        root = parse_xml(self.convert(
            '<math><mfrac><mrow><mi>a</mi></mrow><msup><mi>b</mi><mn>2</mn></msup></mfrac></math>'))
        fraction = root.find(f'{M}f')
        assert_that(texts(fraction, f'{M}num/{M}r/{M}t'), contains_exactly('a'))
        ssup = fraction.find(f'{M}den/{M}sSup')
        assert_that(texts(ssup, f'{M}e/{M}r/{M}t'), contains_exactly('b'))
        assert_that(texts(ssup, f'{M}sup/{M}r/{M}t'), contains_exactly('2'))


    def test_subsup(self):
        root = parse_xml(self.convert(
            '<math><msubsup><mi>x</mi><mn>1</mn><mn>2</mn></msubsup></math>'))
        assert_that(
            [child.tag for child in root.find(f'{M}sSubSup')],
            contains_exactly(f'{M}e', f'{M}sub', f'{M}sup'))


    def test_too_few_children(self):
        root = parse_xml(self.convert('<math><mfrac><mi>a</mi></mfrac></math>'))
        assert_that(root.find(f'{M}f'), is_(none()))
        assert_that(root.findall(f'{M}r'), has_length(1))


    def test_roots(self):
        root = parse_xml(self.convert('<math><msqrt><mi>x</mi></msqrt></math>'))
        assert_that(root.find(f'{M}rad/{M}radPr/{M}degHide'), not_(none()))

        root = parse_xml(self.convert('<math><mroot><mi>x</mi><mn>3</mn></mroot></math>'))
        assert_that(texts(root, f'{M}rad/{M}deg/{M}r/{M}t'), contains_exactly('3'))
        assert_that(texts(root, f'{M}rad/{M}e/{M}r/{M}t'), contains_exactly('x'))


    def test_nary(self):
        root = parse_xml(self.convert(
            '<math><munderover><mo>∑</mo><mrow><mi>i</mi><mo>=</mo><mn>1</mn></mrow>'
            '<mi>n</mi></munderover><mi>i</mi></math>'))
        nary = root.find(f'{M}nary')
        assert_that(nary.find(f'{M}naryPr/{M}chr').get(f'{M}val'), is_('∑'))
        assert_that(nary.find(f'{M}naryPr/{M}limLoc').get(f'{M}val'), is_('undOver'))
        assert_that(texts(nary, f'{M}sub/{M}r/{M}t'), contains_exactly('i', '=', '1'))
        assert_that(texts(nary, f'{M}sup/{M}r/{M}t'), contains_exactly('n'))


    def test_under_over(self):
        root = parse_xml(self.convert(
            '<math><munder><mi>lim</mi><mrow><mi>x</mi><mo>→</mo><mn>0</mn></mrow></munder></math>'))
        assert_that(texts(root, f'{M}limLow/{M}e/{M}r/{M}t'), contains_exactly('lim'))

        root = parse_xml(self.convert('<math><mover><mi>x</mi><mo>^</mo></mover></math>'))
        assert_that(root.find(f'{M}acc/{M}accPr/{M}chr').get(f'{M}val'), is_('^'))

        root = parse_xml(self.convert('<math><mover><mi>x</mi><mtext>def</mtext></mover></math>'))
        assert_that(texts(root, f'{M}limUpp/{M}lim/{M}r/{M}t'), contains_exactly('def'))


    def test_fenced(self):
        root = parse_xml(self.convert(
            '<math><mfenced open="[" close="]"><mi>a</mi></mfenced></math>'))
        assert_that(texts(root, f'{M}r/{M}t'), contains_exactly('[', 'a', ']'))


    def test_table(self):
        root = parse_xml(self.convert(
            '<math><mtable>'
            '<mtr><mtd><mi>a</mi></mtd><mtd><mi>b</mi></mtd></mtr>'
            '<mtr><mtd><mi>c</mi></mtd><mtd><mi>d</mi></mtd></mtr>'
            '</mtable></math>'))
        rows = root.findall(f'{M}m/{M}mr')
        assert_that(rows, has_length(2))
        assert_that(texts(rows[1], f'{M}e/{M}r/{M}t'), contains_exactly('c', 'd'))


    def test_semantics_ignores_annotation(self):
        root = parse_xml(self.convert(
            '<math><semantics><mrow><mi>x</mi></mrow>'
            '<annotation encoding="application/x-tex">x</annotation></semantics></math>'))
        assert_that(texts(root, f'.//{M}t'), contains_exactly('x'))


    def test_unknown_element(self):
        root = parse_xml(self.convert('<math><mblah><mi>q</mi></mblah></math>'))
        assert_that(texts(root, f'{M}r/{M}t'), contains_exactly('q'))
        assert_that(self.progress.warning_messages, has_length(1))


    def test_display_mode(self):
        assert_that(self.convert('<math display="block"><mi>x</mi></math>'),
                    starts_with(f'<m:oMathPara xmlns:m="{NS}">'))
        assert_that(self.convert('<math display="block"><mi>x</mi></math>', False),
                    starts_with(f'<m:oMath xmlns:m="{NS}">'))
        assert_that(self.convert('<math><mi>x</mi></math>'),
                    starts_with(f'<m:oMath xmlns:m="{NS}">'))


    def test_parsed_element(self):
        element = etree.fromstring('<div><math><mi>z</mi></math></div>')
        root = parse_xml(compile_presentation_markup(element, progress = MockProgress()))
        assert_that(texts(root, f'{M}r/{M}t'), contains_exactly('z'))


    def test_malformed(self):
        result = self.convert('<math><mi>x</mi>')
        assert_that(texts(parse_xml(result), f'{M}r/{M}t'), contains_exactly('x'))
        assert_that(self.progress.warning_messages, has_length(1))


    def test_no_math_element(self):
        result = self.convert('<div>hello</div>')
        assert_that(texts(parse_xml(result), f'{M}r/{M}t'), contains_exactly('hello'))
        assert_that(self.progress.warning_messages, has_length(1))


    def test_not_an_element(self):
        progress = MockProgress(expect_error = True)
        result = compile_presentation_markup(None, progress = progress)
        assert_that(result, is_(f'<m:oMath xmlns:m="{NS}"><m:r><m:t/></m:r></m:oMath>'))
        assert_that(progress.error_messages, has_length(1))


    def test_extract_math_markup(self):
        html = '<span class="katex"><math display="block"><mi>x</mi></math><span>x</span></span>'
        assert_that(extract_math_markup(html), is_('<math display="block"><mi>x</mi></math>'))
        assert_that(extract_math_markup('<span>nothing</span>'), is_(none()))
