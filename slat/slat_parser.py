"""
Parses SLAT source text into an ordered list of tokens.

The grammar itself lives in grammar/slat_grammar.yaml and is compiled by koine;
SlatTransformer turns koine's raw tree into slat_datatypes nodes.
"""
from pathlib import Path
from typing import List, Optional

from koine import Parser

from slat.slat_datatypes import Token, SlatParseError
from slat.slat_transformer import SlatTransformer

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "slat_grammar.yaml"


class SlatParser:
    """Grammar-driven parser. Total and side-effect free: it never touches a host."""

    # The compiled grammar is shared by every SlatParser
    _parser: Optional[Parser] = None
    _transformer: Optional[SlatTransformer] = None

    def __init__(self, grammar_path: Optional[str] = None):
        if grammar_path is not None:
            self.parser = Parser.from_file(str(grammar_path))
        else:
            if SlatParser._parser is None:
                SlatParser._parser = Parser.from_file(str(GRAMMAR_PATH))
            self.parser = SlatParser._parser
        if SlatParser._transformer is None:
            SlatParser._transformer = SlatTransformer()
        self.transformer = SlatParser._transformer

    @staticmethod
    def _excerpt(source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        """Numbered source lines around `line`, with a caret under `col`."""
        lines = source.splitlines()
        if not 1 <= (line or 0) <= len(lines):
            return ""
        first, last = max(1, line - radius), min(len(lines), line + radius)
        width = len(str(last))
        out = []
        for n in range(first, last + 1):
            marker = ">" if n == line else " "
            out.append(f"{marker} {n:>{width}} | {lines[n - 1]}")
            if n == line and col is not None:
                out.append(f"  {'':>{width}} | {' ' * max(col - 1, 0)}^")
        return "\n".join(out)

    def _format_parse_error(self, parse_out, source: str) -> SlatParseError:
        node = (parse_out or {}).get('error_node') or {}
        base = (parse_out or {}).get('error_message') or (parse_out or {}).get('message') or str(parse_out)
        line = node.get('line')
        col = node.get('col')
        if line is not None and col is not None:
            context = self._excerpt(source, line, col)
            msg = f"ParseError: {base} (line {line}, col {col})"
            if context:
                msg = f"{msg}\n{context}"
            return SlatParseError(msg, line, col)
        return SlatParseError(f"ParseError: {base}")

    def parse(self, source: str) -> List[Token]:
        """Parses `source` into statements, or raises a single SlatParseError."""
        try:
            parse_out = self.parser.parse(source)
        except Exception as e:
            raise SlatParseError(f"ParseError: {e}") from e

        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                raise self._format_parse_error(parse_out, source)
            ast_node = parse_out.get('ast')
        else:
            ast_node = parse_out

        try:
            return self.transformer.transform_program(ast_node)
        except SlatParseError as e:
            msg = f"ParseError: {e}"
            if e.line is not None:
                msg = f"{msg} (line {e.line}, col {e.col})"
            raise SlatParseError(msg, e.line, e.col) from e


def parse(source: str) -> List[Token]:
    """Parses SLAT source with the bundled grammar."""
    return SlatParser().parse(source)
