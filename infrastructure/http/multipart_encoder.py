from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from urllib3 import encode_multipart_formdata

from application.ports.multipart_encoder import EncodedMultipart, MultipartEncoderPort
from domain.errors import StructuralError

FILES_FIELD = "files"
FILE_CONTENT_TYPE = "application/octet-stream"


class UrllibMultipartEncoder(MultipartEncoderPort):
    """Every file goes under the "files" field as application/octet-stream."""

    def encode(self, files: Mapping[str, Any]) -> EncodedMultipart:
        fields: List[Tuple[str, Tuple[str, Any, str]]] = []
        for filename, data in files.items():
            if hasattr(data, "read"):
                data = data.read()
            if not isinstance(data, (str, bytes)):
                raise StructuralError(f"file {filename}: expected str, bytes or a readable stream, got {type(data).__name__}")
            fields.append((FILES_FIELD, (filename, data, FILE_CONTENT_TYPE)))

        body, content_type = encode_multipart_formdata(fields)
        return EncodedMultipart(body=body, content_type=content_type)
