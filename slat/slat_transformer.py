"""
Transforms the raw parser AST into SLAT tokens using slat_datatypes.
"""

import re

from slat.slat_datatypes import (
    Token, Identifier, Literal, Import, ArrayExpression, MemberExpression,
    MethodCall, Assignment, SlatParseError
)

I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', "'": "'"}
_ESCAPE_RE = re.compile(r'\\(.)', re.DOTALL)


class SlatTransformer:
    # Grammar rules that only select between alternatives.
    _WRAPPERS = ('statement', 'expression', 'member', 'literal', 'indexable')

    def _attach_loc(self, obj, node):
        line = node.get('line'); col = node.get('col')
        if line is not None and col is not None:
            obj.loc = {'line': line, 'col': col, 'tag': node.get('tag'), 'text': node.get('text')}
        return obj

    def _children(self, node: dict) -> list:
        """Child nodes in source order, flattened out of anonymous sequences."""
        out = []

        def walk(item):
            if item is None:
                return
            if isinstance(item, list):
                for sub in item:
                    walk(sub)
            elif isinstance(item, dict):
                if 'tag' in item:
                    out.append(item)
                else:
                    # Named-children dicts (no 'tag')
                    for sub in item.values():
                        walk(sub)

        walk(node.get('children'))
        return out

    def transform_program(self, node) -> list[Token]:
        """Transforms the parser's top-level result into an ordered statement list."""
        if isinstance(node, list):
            statements = []
            for item in node:
                statements.extend(self.transform_program(item))
            return statements
        if not isinstance(node, dict):
            return []
        if node.get('tag') == 'program':
            return [self.transform(c) for c in self._children(node)]
        return [self.transform(node)]

    def transform(self, node: dict) -> Token:
        tag = node.get('tag')
        children = self._children(node)

        match tag:
            case _ if tag in self._WRAPPERS:
                if len(children) != 1:
                    raise SlatParseError(f"expected a single {tag}, found {len(children)}",
                                         node.get('line'), node.get('col'))
                return self.transform(children[0])

            case 'import_stmt':
                path = [self._leaf_text(c) for c in children]
                return self._attach_loc(Import(path), node)

            case 'assignment':
                if len(children) != 2:
                    raise SlatParseError("malformed assignment", node.get('line'), node.get('col'))
                name = self._leaf_text(children[0])
                return self._attach_loc(Assignment(name, self.transform(children[1])), node)

            case 'member_expr':
                owner = self.transform(children[0])
                if not isinstance(owner, Identifier):
                    raise SlatParseError("member expression has invalid owner",
                                         node.get('line'), node.get('col'))
                members = [self.transform(c) for c in children[1:]]
                return self._attach_loc(MemberExpression(owner, members), node)

            case 'array_expr':
                target = self.transform(children[0])
                for index_node in children[1:]:
                    target = self._attach_loc(ArrayExpression(target, self.transform(index_node)), index_node)
                return target

            case 'index':
                if len(children) != 1:
                    raise SlatParseError("array index must be a single expression",
                                         node.get('line'), node.get('col'))
                return self.transform(children[0])

            case 'method_call':
                name = self._leaf_text(children[0])
                args = [self.transform(c) for c in children[1:]]
                return self._attach_loc(MethodCall(name, args), node)

            # Atomics
            case 'identifier':
                return self._attach_loc(Identifier(node['text']), node)
            case 'integer':
                value = int(node['text'])
                if not I64_MIN <= value <= I64_MAX:
                    raise SlatParseError(f"integer literal out of range: {node['text']}",
                                         node.get('line'), node.get('col'))
                return self._attach_loc(Literal('integer', value), node)
            case 'decimal':
                return self._attach_loc(Literal('decimal', float(node['text'])), node)
            case 'string':
                return self._attach_loc(Literal('string', self._unquote(node['text'])), node)
            case 'boolean':
                return self._attach_loc(Literal('boolean', node['text'] == 'true'), node)

            case _:
                raise NotImplementedError(f"No transformer for tag '{tag}'")

    def _leaf_text(self, node: dict) -> str:
        if node.get('tag') != 'identifier':
            raise SlatParseError(f"expected identifier, found {node.get('tag')}",
                                 node.get('line'), node.get('col'))
        return node['text']

    def _unquote(self, text: str) -> str:
        # Strip the surrounding quotes, then decode backslash escapes.
        body = text[1:-1] if len(text) >= 2 and text[0] == text[-1] and text[0] in '"\'' else text
        return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), '\\' + m.group(1)), body)
