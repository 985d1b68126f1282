from __future__ import annotations

import logging
from typing import Protocol

from calmjs.parse import es5
from calmjs.parse.exceptions import ECMARegexSyntaxError, ECMASyntaxError
from calmjs.parse.unparsers.es5 import minify_print

logger = logging.getLogger(__name__)


class Minifier(Protocol):
    def minify(self, code: str) -> str | None:
        """Return the minified code, or ``None`` when no output could be produced."""
        ...


class AstMinifier:
    """Parse to an ES5 syntax tree, rename locals and print it back compactly.

    Slower than the engine's single-pass minifier but shortens identifiers.
    Sources the ES5 grammar cannot parse (module syntax, newer operators)
    produce no output.
    """

    def __init__(self, *, obfuscate: bool = True) -> None:
        self._obfuscate = obfuscate

    def minify(self, code: str) -> str | None:
        try:
            program = es5(code)
        except (ECMASyntaxError, ECMARegexSyntaxError) as exc:
            logger.warning("AST minifier could not parse input: %s", exc)
            return None
        return minify_print(program, obfuscate=self._obfuscate, obfuscate_globals=False)
