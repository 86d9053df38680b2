from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, ClassVar, Literal, Optional, TypeVar, Union

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]

_ROUTE_ATTR = "_proxy_api_route"
_MARKER_ATTR = "_proxy_http_marker"
_TIMEOUT_ATTR = "_proxy_timeout"
_HEADERS_ATTR = "_proxy_headers"

T = TypeVar("T")


class ContentType(str, Enum):
    JSON = "application/json"
    XML = "application/xml"
    FORM_URLENCODED = "application/x-www-form-urlencoded"
    MULTIPART_FORM_DATA = "multipart/form-data"


class ApiContract:
    """
    Root of every proxy contract.

    Public methods declared directly on this class are baseline operations
    that every compiled contract carries.
    """


class FromBody:
    """Parameter marker: bind the argument from the request body.

    Use through ``Annotated[Model, FromBody]``.
    """

    def __repr__(self) -> str:
        return "FromBody()"


def is_from_body_marker(obj: Any) -> bool:
    return obj is FromBody or isinstance(obj, FromBody)


@dataclass(frozen=True)
class ApiRoute:
    region_key: str
    route_template: Optional[str] = None


@dataclass(frozen=True)
class HttpMethodMarker:
    template: Optional[str] = None

    http_method: ClassVar[HttpMethod] = "GET"


@dataclass(frozen=True)
class HttpGetMarker(HttpMethodMarker):
    http_method: ClassVar[HttpMethod] = "GET"


@dataclass(frozen=True)
class HttpPostMarker(HttpMethodMarker):
    content_type: ContentType = ContentType.JSON

    http_method: ClassVar[HttpMethod] = "POST"


@dataclass(frozen=True)
class HttpPutMarker(HttpMethodMarker):
    content_type: ContentType = ContentType.JSON

    http_method: ClassVar[HttpMethod] = "PUT"


@dataclass(frozen=True)
class HttpDeleteMarker(HttpMethodMarker):
    http_method: ClassVar[HttpMethod] = "DELETE"


# ----------------------------
# Class annotation
# ----------------------------

def api_route(region_key: str, route_template: Optional[str] = None) -> Callable[[type], type]:
    """
    Mark a class as a proxy contract.

    region_key selects the target host; route_template is combined with the
    class name to form the base route. Validation happens at compile time.
    """

    def wrap(cls: type) -> type:
        setattr(cls, _ROUTE_ATTR, ApiRoute(region_key=region_key, route_template=route_template))
        return cls

    return wrap


def get_api_route(cls: type) -> Optional[ApiRoute]:
    # own namespace only: route annotations are not inherited
    return vars(cls).get(_ROUTE_ATTR)


# ----------------------------
# Method annotations
# ----------------------------

def _target_function(obj: Any) -> Callable:
    if isinstance(obj, staticmethod):
        return obj.__func__
    return obj


def _mark(marker: HttpMethodMarker) -> Callable[[T], T]:
    def deco(obj: T) -> T:
        fn = _target_function(obj)
        existing = getattr(fn, _MARKER_ATTR, None)
        if existing is not None:
            raise TypeError(
                f"{fn.__qualname__} already has an HTTP verb marker ({existing.http_method}); "
                f"cannot add {marker.http_method}"
            )
        setattr(fn, _MARKER_ATTR, marker)
        return obj

    return deco


def http_get(template: Optional[str] = None) -> Callable[[T], T]:
    return _mark(HttpGetMarker(template=template))


def http_post(
    template: Optional[str] = None,
    content_type: ContentType = ContentType.JSON,
) -> Callable[[T], T]:
    return _mark(HttpPostMarker(template=template, content_type=content_type))


def http_put(
    template: Optional[str] = None,
    content_type: ContentType = ContentType.JSON,
) -> Callable[[T], T]:
    return _mark(HttpPutMarker(template=template, content_type=content_type))


def http_delete(template: Optional[str] = None) -> Callable[[T], T]:
    return _mark(HttpDeleteMarker(template=template))


def api_timeout(timeout: Union[int, float, timedelta]) -> Callable[[T], T]:
    """Per-call timeout, in seconds or as a timedelta."""
    value = timeout if isinstance(timeout, timedelta) else timedelta(seconds=timeout)
    if value <= timedelta(0):
        raise ValueError(f"timeout must be positive, got {timeout!r}")

    def deco(obj: T) -> T:
        setattr(_target_function(obj), _TIMEOUT_ATTR, value)
        return obj

    return deco


def http_headers(*headers: str) -> Callable[[T], T]:
    """Static request headers in "Name: Value" form."""

    def deco(obj: T) -> T:
        setattr(_target_function(obj), _HEADERS_ATTR, tuple(headers))
        return obj

    return deco


def get_http_marker(fn: Callable) -> Optional[HttpMethodMarker]:
    return getattr(fn, _MARKER_ATTR, None)


def get_timeout(fn: Callable) -> Optional[timedelta]:
    return getattr(fn, _TIMEOUT_ATTR, None)


def get_headers(fn: Callable) -> Optional[tuple[str, ...]]:
    return getattr(fn, _HEADERS_ATTR, None)
