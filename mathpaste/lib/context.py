'''
The settings that govern a single conversion, passed explicitly down to everything that renders
math.
'''

from .latex_omml import ENGINE_NATIVE
from .progress import Progress

from dataclasses import dataclass, field, replace


@dataclass(frozen = True)
class RenderContext:
    # True: produce OMML, for pasting into Word. False: produce MathML, for an HTML preview.
    for_clipboard: bool = False

    # 'native' or 'mathml'; see latex_omml.compile_latex().
    latex_engine: str = ENGINE_NATIVE

    # Whether to treat math-like '(...)' groups as inline math.
    soft_parentheses: bool = True

    progress: Progress = field(default_factory = Progress, compare = False)

    def clipboard(self) -> 'RenderContext':
        return replace(self, for_clipboard = True)
