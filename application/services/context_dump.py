from __future__ import annotations

import json
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

from application.config import DEFAULT_CONTEXT_DUMP_LIMIT
from application.services.request_preparer import json_default


def dump_context(
    cx: Mapping[str, Any],
    limit: int = DEFAULT_CONTEXT_DUMP_LIMIT,
    out_dir: Optional[str] = None,
) -> str:
    """
    Inline JSON of the check context, or the path of a temp file holding it
    when the inline text would exceed ``limit`` characters.
    """
    dump = json.dumps(dict(cx), default=json_default, ensure_ascii=False)
    if len(dump) <= limit:
        return dump

    uniq = f"{datetime.now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex}"
    path = Path(out_dir or tempfile.gettempdir()) / f"stepscript-context-dump-{uniq}.json"
    path.write_text(json.dumps(dict(cx), default=json_default, ensure_ascii=False, indent=2), encoding="utf-8")
    return str(path)
