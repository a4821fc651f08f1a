import os
from setuptools import setup

def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()

setup(
    name = 'mathpaste',
    version = '0.1',
    description = 'Converts LaTeX math in AI-assistant Markdown into Word-native equations (OMML).',
    long_description = read('README.md'),
    license = 'MIT',
    keywords = 'markdown latex mathml omml word',
    install_requires=[
        'markdown', 'lxml', 'cssselect', 'pymdown-extensions', 'latex2mathml'
    ],
    extras_require = {
        'test': ['pytest', 'PyHamcrest'],
    },
    packages = [
        'mathpaste', 'mathpaste.lib', 'mathpaste.ext'
    ],
    entry_points = {
        'console_scripts': ['mpaste=mathpaste.lib.mpaste:main'],
        'markdown.extensions': [
            'mathpaste.word_math = mathpaste.ext.word_math:WordMathExtension',
        ]
    },
    classifiers = [
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: End Users/Desktop',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Office/Business :: Office Suites',
        'Topic :: Text Processing :: Markup :: Markdown',
    ]
)
