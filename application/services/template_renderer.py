from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from application.services.operators import COMPARE_OPS, COMPARISON_OPS, CheckOperator, OperatorRegistry
from domain.errors import TemplateRenderError
from domain.values import UNDEFINED, is_numeric_string, js_string, parse_number

_TEMPLATE_RE = re.compile(r"\{\{(.*?)\}\}", re.S)
_BARE_RE = re.compile(r"^\{\{\s*([^\s{}'\"]+)\s*\}\}$")
_TOKEN_RE = re.compile(r"\s*(?:'([^']*)'|\"([^\"]*)\"|([^\s'\"]+))")
_SEGMENT_RE = re.compile(r"\[([^\]]*)\]|[^.\[\]]+")

_LITERALS = {"true": True, "false": False, "null": None, "undefined": UNDEFINED}

OBJECT_TEXT = "[object Object]"


@dataclass(frozen=True)
class Token:
    raw: str
    value: Any = None
    is_path: bool = False
    quoted: bool = False


def resolve_path(root: Any, path: str) -> Any:
    """
    Walk a dotted path: a.b.c, items[0].id, items.[0].id, list.length.
    Anything that cannot be followed yields UNDEFINED.
    """
    cur = root
    for m in _SEGMENT_RE.finditer(path):
        seg = m.group(1) if m.group(1) is not None else m.group(0)
        seg = seg.strip().strip("'\"")
        cur = _resolve_part(cur, seg)
        if cur is UNDEFINED:
            return UNDEFINED
    return cur


def _resolve_part(cur: Any, part: str) -> Any:
    if cur is None or cur is UNDEFINED:
        return UNDEFINED
    if isinstance(cur, Mapping):
        return cur[part] if part in cur else UNDEFINED
    if isinstance(cur, (list, tuple, str)):
        if part == "length":
            return len(cur)
        if part.isdigit():
            idx = int(part)
            return cur[idx] if idx < len(cur) else UNDEFINED
        return UNDEFINED
    if not part.startswith("_") and hasattr(cur, part):
        return getattr(cur, part)
    return UNDEFINED


def tokenize(expr: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    text = expr.strip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            raise TemplateRenderError(f"cannot parse expression: {expr}")
        pos = m.end()
        if m.group(1) is not None:
            tokens.append(Token(raw=m.group(1), value=m.group(1), quoted=True))
        elif m.group(2) is not None:
            tokens.append(Token(raw=m.group(2), value=m.group(2), quoted=True))
        else:
            raw = m.group(3)
            if raw in COMPARISON_OPS:
                tokens.append(Token(raw=raw, value=raw))
            elif raw in _LITERALS:
                tokens.append(Token(raw=raw, value=_LITERALS[raw]))
            elif is_numeric_string(raw):
                tokens.append(Token(raw=raw, value=parse_number(raw)))
            else:
                tokens.append(Token(raw=raw, is_path=True))
    return tokens


class TemplateRenderer:
    """
    {{path}} / {{helper arg ...}} を展開する。
    - path: ドット参照、[n] / .[n] インデックス、length
    - helper: OperatorRegistry に登録された演算子
    """

    def __init__(self, operators: Optional[OperatorRegistry] = None):
        self._operators = operators or OperatorRegistry()

    @property
    def operators(self) -> OperatorRegistry:
        return self._operators

    def render(self, template: str, ctx: Mapping[str, Any]) -> str:
        if "{{" not in template:
            return template
        return _TEMPLATE_RE.sub(lambda m: js_string(self.evaluate(m.group(1), ctx)), template)

    def render_check(self, expr: str, ctx: Mapping[str, Any]) -> str:
        return js_string(self.evaluate(expr, ctx))

    def render_value(self, value: Any, ctx: Mapping[str, Any]) -> Any:
        """
        Like render(), but a lone ``{{path}}`` that renders as an object
        placeholder returns the referenced value itself.
        """
        if not isinstance(value, str) or "{{" not in value:
            return value
        rendered = self.render(value, ctx)
        if rendered == OBJECT_TEXT:
            m = _BARE_RE.match(value.strip())
            if m:
                return resolve_path(ctx, m.group(1))
        return rendered

    def walk(self, value: Any, ctx: Mapping[str, Any]) -> Any:
        if isinstance(value, str):
            return self.render_value(value, ctx)
        if isinstance(value, list):
            return [self.walk(x, ctx) for x in value]
        if isinstance(value, Mapping):
            return {
                (self.render(k, ctx) if isinstance(k, str) else k): self.walk(v, ctx)
                for k, v in value.items()
            }
        return value

    def evaluate(self, expr: str, ctx: Mapping[str, Any]) -> Any:
        tokens = tokenize(expr)
        if not tokens:
            raise TemplateRenderError("empty template expression")

        head = tokens[0]
        if len(tokens) == 1:
            if not head.is_path:
                return head.value
            value = resolve_path(ctx, head.raw)
            if value is UNDEFINED:
                raise TemplateRenderError(f"unresolved template path: {head.raw}")
            return value

        name = head.raw
        if head.quoted or not self._operators.has(name):
            raise TemplateRenderError(f"unknown helper: {name}")
        args = [resolve_path(ctx, t.raw) if t.is_path else t.value for t in tokens[1:]]
        if name == CheckOperator.COMPARE.value and len(tokens) > 2:
            op = tokens[2]
            # compare x startsWith y: the operator is a bare word, not a scope path
            if not op.quoted and op.raw in COMPARE_OPS:
                args[1] = op.raw
        return self._operators.invoke(name, args)
