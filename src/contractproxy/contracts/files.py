from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Optional, Union


@dataclass(frozen=True)
class FormFile:
    """
    File content sent as one part of a multipart/form-data request.

    Any operation with a FormFile parameter (directly, in a collection, or
    nested inside a model) is compiled with a multipart content type.
    """

    filename: str
    content: Union[bytes, BinaryIO]
    content_type: str = "application/octet-stream"
    name: Optional[str] = None  # form field name; defaults to the parameter name
