from . import md_converter, progress as prog
from .context import RenderContext
from .latex_omml import ENGINE_NATIVE, ENGINES, compile_latex
from .rendered_math import convert_html_for_clipboard

import argparse
import os
import os.path
import sys

VERSION = '0.1'
NAME = 'mpaste'  # For errors/warnings

STDIO = '-'


def read_input(path: str, progress: prog.Progress):
    if path == STDIO:
        return sys.stdin.read()

    if not os.path.exists(path):
        progress.error(NAME, msg = f'"{path}" not found')
    elif not os.path.isfile(path):
        progress.error(NAME, msg = f'"{path}" is not a file')
    elif not os.access(path, os.R_OK):
        progress.error(NAME, msg = f'"{path}" is not readable')
    else:
        with open(path, encoding = 'utf-8') as reader:
            return reader.read()
    return None


def check_output(path: str, progress: prog.Progress) -> bool:
    if path == STDIO:
        return True

    if os.path.exists(path):
        if os.path.isdir(path) or not os.access(path, os.W_OK):
            progress.error(NAME, msg = f'cannot write output: "{path}" is not writable')
            return False
    else:
        directory = os.path.dirname(os.path.abspath(path))
        if not os.access(directory, os.W_OK):
            progress.error(NAME, msg = f'cannot write output: "{directory}" is not writable')
            return False
    return True


def write_output(path: str, content: str):
    if path == STDIO:
        sys.stdout.write(content)
        if not content.endswith('\n'):
            sys.stdout.write('\n')
    else:
        with open(path, 'w', encoding = 'utf-8') as writer:
            writer.write(content)


def convert(source: str, args, progress: prog.Progress) -> str:
    context = RenderContext(for_clipboard    = not args.preview,
                            latex_engine     = args.latex_engine,
                            soft_parentheses = not args.no_soft_parens,
                            progress         = progress)
    if args.html:
        if context.for_clipboard:
            html = convert_html_for_clipboard(source, context)
        else:
            html = source
    else:
        html = md_converter.convert_markdown(
            source,
            context.for_clipboard,
            latex_engine     = context.latex_engine,
            soft_parentheses = context.soft_parentheses,
            progress         = progress)

    if args.fragment or args.preview:
        return html
    return md_converter.wrap_html_for_word(html)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog        = 'mpaste',
        description = ('Convert Markdown with LaTeX math (as written by AI assistants) into HTML '
                       'that pastes into Microsoft Word with editable equations.'),
        formatter_class = argparse.RawDescriptionHelpFormatter)

    parser.add_argument(
        '-v', '--version', action = 'version',
        version = f'mathpaste {VERSION}')

    parser.add_argument(
        'input', metavar = 'INPUT.md', type = str, nargs = '?', default = STDIO,
        help = 'Input markdown (.md) file, or "-" (the default) to read standard input.')

    parser.add_argument(
        '-o', '--output', metavar = 'OUTPUT.html', type = str,
        help = ('Output HTML file, or "-" for standard output. (By default, this is based on the '
                'input filename, or is standard output if reading standard input.)'))

    parser.add_argument(
        '--preview', action = 'store_true',
        help = ('Render math as MathML, for viewing in a browser, rather than as OMML for Word. '
                'Implies --fragment.'))

    parser.add_argument(
        '--fragment', action = 'store_true',
        help = 'Output just the converted HTML, without the surrounding Word document.')

    parser.add_argument(
        '--html', action = 'store_true',
        help = ('The input is HTML (e.g., copied from a chat page), not Markdown. Formulas '
                'already rendered by KaTeX or MathJax are converted to OMML.'))

    parser.add_argument(
        '--latex-engine', choices = ENGINES, default = ENGINE_NATIVE,
        help = (f'How LaTeX is converted: "{ENGINES[0]}" (built-in parser; the default) or '
                f'"{ENGINES[1]}" (via latex2mathml, falling back to the built-in parser).'))

    parser.add_argument(
        '--no-soft-parens', action = 'store_true',
        help = 'Do not treat formula-like "(...)" groups as inline math.')

    parser.add_argument(
        '-x', '--latex', metavar = 'LATEX', type = str,
        help = 'Compile a single LaTeX formula, and print the resulting OMML.')

    parser.add_argument(
        '--display', action = 'store_true',
        help = 'With -x/--latex, compile the formula as display (block) math.')

    args = parser.parse_args()
    progress = prog.Progress()

    if args.latex is not None:
        write_output(STDIO, compile_latex(args.latex, args.display, args.latex_engine, progress))
        return 1 if progress.get_errors() else 0

    if args.output:
        target_file = args.output
    elif args.input == STDIO:
        target_file = STDIO
    else:
        target_file = os.path.abspath(args.input).rsplit('.', 1)[0] + '.html'

    source = read_input(args.input, progress)
    go = source is not None
    go = check_output(target_file, progress) and go

    if (args.input != STDIO and target_file != STDIO
            and os.path.abspath(target_file) == os.path.abspath(args.input)):
        go = False
        progress.error(NAME, msg = f'output would overwrite input "{args.input}"')

    if not go:
        return 1

    try:
        write_output(target_file, convert(source, args, progress))
    except OSError as e:
        progress.error(NAME, msg = f'cannot write output: {e}')
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
