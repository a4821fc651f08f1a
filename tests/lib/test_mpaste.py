from mathpaste.lib import mpaste, omml
from mathpaste.lib.latex_omml import compile_latex
from ..util.mock_progress import MockProgress
import unittest
from unittest.mock import patch
from hamcrest import (assert_that, contains_string, empty, ends_with, has_length, is_, is_not,
                      starts_with)

import io
import os
import tempfile


NS = omml.OMML_NAMESPACE


class MpasteTestCase(unittest.TestCase):

    def setUp(self):
        self.orig_dir = os.getcwd()
        self.tmp_dir_context = tempfile.TemporaryDirectory()
        self.tmp_dir = self.tmp_dir_context.__enter__()
        os.chdir(self.tmp_dir)


    def tearDown(self):
        os.chdir(self.orig_dir)
        self.tmp_dir_context.__exit__(None, None, None)


    def create_file(self, filename, content):
        with open(filename, 'w', encoding = 'utf-8') as writer:
            writer.write(content)


    def read_file(self, filename):
        with open(filename, encoding = 'utf-8') as reader:
            return reader.read()


    def run_main(self, *args, stdin = ''):
        self.mock_progress = MockProgress(expect_error = True)
        self.stdout = io.StringIO()
        with patch('sys.argv', ['mpaste', *args]), \
             patch('sys.stdin', io.StringIO(stdin)), \
             patch('sys.stdout', self.stdout), \
             patch('mathpaste.lib.progress.Progress', return_value = self.mock_progress):
            return mpaste.main()


    def assert_no_errors(self):
        assert_that(self.mock_progress.error_messages, empty())


    def test_okay_defaults(self):
        self.create_file('doc.md', 'Let $x$ be.')
        assert_that(self.run_main('doc.md'), is_(0))
        self.assert_no_errors()

        output = self.read_file('doc.html')
        assert_that(output, starts_with('<!DOCTYPE html>'))
        assert_that(output, contains_string('<meta name="ProgId" content="Word.Document">'))
        assert_that(output, contains_string(f'<p>Let {compile_latex("x")} be.</p>'))


    def test_output_fragment(self):
        self.create_file('doc.md', 'Let $x$ be.')
        assert_that(self.run_main('doc.md', '-o', 'out.html', '--fragment'), is_(0))
        self.assert_no_errors()
        assert_that(self.read_file('out.html'), is_(f'<p>Let {compile_latex("x")} be.</p>'))
        assert_that(os.path.exists('doc.html'), is_(False))


    def test_preview(self):
        self.create_file('doc.md', 'Let $x$ be.')
        assert_that(self.run_main('doc.md', '--preview'), is_(0))
        output = self.read_file('doc.html')
        assert_that(output, starts_with('<p>Let <span class="math-inline"><math'))
        assert_that(output, is_not(contains_string('m:oMath')))


    def test_options(self):
        self.create_file('doc.md', 'See (a+b) and $\\frac{1}{2}$.')
        assert_that(
            self.run_main('doc.md', '--fragment', '--no-soft-parens', '--latex-engine', 'mathml'),
            is_(0))
        output = self.read_file('doc.html')
        assert_that(output, contains_string('(a+b)'))
        assert_that(output, contains_string('<m:f>'))


    def test_html_input(self):
        self.create_file(
            'page.htm',
            '<p>Area <span class="katex"><span data-tex="\\pi r^2">πr2</span></span>.</p>')
        assert_that(self.run_main('page.htm', '--html', '--fragment'), is_(0))
        output = self.read_file('page.html')
        assert_that(output, starts_with(f'<p>Area <span><m:oMath xmlns:m="{NS}">'))


    def test_stdin_to_stdout(self):
        assert_that(self.run_main('--fragment', stdin = '$y$'), is_(0))
        assert_that(self.stdout.getvalue(), is_(f'<p>{compile_latex("y")}</p>\n'))


    def test_explicit_stdout(self):
        self.create_file('doc.md', 'text')
        assert_that(self.run_main('doc.md', '-o', '-', '--fragment'), is_(0))
        assert_that(self.stdout.getvalue(), is_('<p>text</p>\n'))
        assert_that(os.path.exists('doc.html'), is_(False))


    def test_single_formula(self):
        assert_that(self.run_main('-x', 'x^2'), is_(0))
        assert_that(self.stdout.getvalue(), is_(compile_latex('x^2') + '\n'))

        assert_that(self.run_main('-x', 'x^2', '--display'), is_(0))
        assert_that(self.stdout.getvalue(), starts_with(f'<m:oMathPara xmlns:m="{NS}">'))
        assert_that(self.stdout.getvalue(), ends_with('</m:oMathPara>\n'))


    def test_missing_input(self):
        assert_that(self.run_main('missing.md'), is_(1))
        assert_that(self.mock_progress.error_messages, has_length(1))
        assert_that(os.path.exists('missing.html'), is_(False))


    def test_input_is_directory(self):
        os.mkdir('dir.md')
        assert_that(self.run_main('dir.md'), is_(1))
        assert_that(self.mock_progress.error_messages, has_length(1))


    def test_unwritable_output(self):
        self.create_file('doc.md', 'text')
        assert_that(self.run_main('doc.md', '-o', os.path.join('no', 'such', 'dir', 'x.html')),
                    is_(1))
        assert_that(self.mock_progress.error_messages, has_length(1))


    def test_output_would_overwrite_input(self):
        self.create_file('page.html', '<p>x</p>')
        assert_that(self.run_main('page.html', '--html'), is_(1))
        assert_that(self.mock_progress.error_messages, has_length(1))
        assert_that(self.read_file('page.html'), is_('<p>x</p>'))
