'''
Splits LaTeX math source into a flat list of tokens. Every non-whitespace character ends up in
some token; nothing here can fail.
'''

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import List


class TokenKind(enum.Enum):
    COMMAND     = 'command'
    LITERAL     = 'literal'
    NUMBER      = 'number'
    OPERATOR    = 'operator'
    GROUP_OPEN  = 'group_open'
    GROUP_CLOSE = 'group_close'
    SUBSCRIPT   = 'subscript'
    SUPERSCRIPT = 'superscript'


@dataclass(frozen = True)
class Token:
    kind: TokenKind
    text: str


OPERATOR_CHARS = frozenset('+-*/=<>()[],.|!')

_SINGLE_CHAR_KINDS = {
    '{': TokenKind.GROUP_OPEN,
    '}': TokenKind.GROUP_CLOSE,
    '_': TokenKind.SUBSCRIPT,
    '^': TokenKind.SUPERSCRIPT,
}


def _is_letter(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z')


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def tokenize(latex: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    length = len(latex)

    while i < length:
        ch = latex[i]

        if ch == '\\':
            start = i
            i += 1
            while i < length and _is_letter(latex[i]):
                i += 1
            if i == start + 1 and i < length:
                # Control symbol, like '\\', '\{' or '\,'.
                i += 1
            tokens.append(Token(TokenKind.COMMAND, latex[start:i]))

        elif ch in _SINGLE_CHAR_KINDS:
            tokens.append(Token(_SINGLE_CHAR_KINDS[ch], ch))
            i += 1

        elif _is_digit(ch):
            start = i
            seen_point = False
            while i < length:
                if _is_digit(latex[i]):
                    i += 1
                elif (latex[i] == '.' and not seen_point
                      and i + 1 < length and _is_digit(latex[i + 1])):
                    seen_point = True
                    i += 1
                else:
                    break
            tokens.append(Token(TokenKind.NUMBER, latex[start:i]))

        elif _is_letter(ch):
            # One letter per token; LaTeX treats 'ab' as a product of two variables, not a word.
            tokens.append(Token(TokenKind.LITERAL, ch))
            i += 1

        elif ch in OPERATOR_CHARS:
            tokens.append(Token(TokenKind.OPERATOR, ch))
            i += 1

        elif ch.isspace():
            i += 1

        else:
            tokens.append(Token(TokenKind.LITERAL, ch))
            i += 1

    return tokens
