# application/services/extractor.py
from __future__ import annotations

import json
import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JSONPathError

from application.services.template_renderer import resolve_path
from domain.errors import ExtractionError
from domain.steps.request import CaptureSource
from domain.values import UNDEFINED

Headers = Sequence[Tuple[str, str]]


def first_header(headers: Headers, name: str) -> Optional[str]:
    wanted = name.lower()
    for n, v in headers:
        if n.lower() == wanted:
            return v
    return None


def all_headers(headers: Headers, name: str) -> List[str]:
    wanted = name.lower()
    return [v for n, v in headers if n.lower() == wanted]


def find_cookie(headers: Headers, cookie_name: str) -> Optional[str]:
    pattern = re.compile(r"(?<![\w-])" + re.escape(cookie_name) + r"=([^;,]+)")
    for raw in all_headers(headers, "set-cookie"):
        m = pattern.search(raw)
        if m:
            return m.group(1).strip()
    return None


class Extractor:
    """
    Pull one value out of a response (or the current variables).

    Source order when several are set: body, assign, header, cookie.
    A JSONPath with no match yields UNDEFINED, which callers treat as unset.
    """

    def extract(
        self,
        var_name: str,
        source: CaptureSource,
        body: Any,
        headers: Headers,
        variables: Mapping[str, Any],
        required: bool = True,
    ) -> Any:
        value = self._extract_raw(var_name, source, body, headers, variables, required)
        return self._reparse(var_name, value, source.parse)

    def _extract_raw(
        self,
        var_name: str,
        source: CaptureSource,
        body: Any,
        headers: Headers,
        variables: Mapping[str, Any],
        required: bool,
    ) -> Any:
        if source.from_body:
            if source.body_path is None:
                return body
            return self._from_body(var_name, source.body_path, body)

        if source.assign:
            root = re.split(r"[.\[]", source.assign, maxsplit=1)[0]
            if root not in variables:
                raise ExtractionError(
                    f"extract: var={var_name} error=undefined_variable assign={source.assign}"
                )
            return resolve_path(variables, source.assign)

        if source.header:
            value = first_header(headers, source.header)
            if value is None and required:
                raise ExtractionError(f"extract: var={var_name} error=header_not_found header={source.header}")
            return value

        if source.cookie:
            value = find_cookie(headers, source.cookie)
            if value is None and required:
                raise ExtractionError(f"extract: var={var_name} error=cookie_not_found cookie={source.cookie}")
            return value

        raise ExtractionError(f"extract: var={var_name} error=invalid_capture_source")

    def _from_body(self, var_name: str, path: str, body: Any) -> Any:
        try:
            expr = jsonpath_parse(f"$.{path}")
        except JSONPathError as e:
            raise ExtractionError(f"extract: var={var_name} error=invalid_jsonpath path={path}: {e}") from e

        if not isinstance(body, (dict, list)):
            return UNDEFINED
        matches = [m.value for m in expr.find(body)]
        if not matches:
            return UNDEFINED
        if len(matches) == 1:
            return matches[0]
        return matches

    def _reparse(self, var_name: str, value: Any, count: int) -> Any:
        for _ in range(count):
            if not isinstance(value, str):
                break
            try:
                value = json.loads(value)
            except ValueError as e:
                raise ExtractionError(f"extract: var={var_name} error=parse_failed: {e}") from e
        return value
