from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RouteTemplateError(ValueError):
    """Raised when a route template string is malformed."""

    def __init__(self, template: str, reason: str):
        super().__init__(f"Invalid route template {template!r}: {reason}")
        self.template = template
        self.reason = reason


@dataclass(frozen=True)
class TemplatePart:
    is_literal: bool
    is_parameter: bool
    text: Optional[str] = None
    name: Optional[str] = None
    is_optional: bool = False
    is_catch_all: bool = False
    default_value: Optional[str] = None
    constraints: tuple[str, ...] = ()

    @classmethod
    def literal(cls, text: str) -> "TemplatePart":
        return cls(is_literal=True, is_parameter=False, text=text)

    @classmethod
    def parameter(
        cls,
        name: str,
        *,
        is_optional: bool = False,
        is_catch_all: bool = False,
        default_value: Optional[str] = None,
        constraints: tuple[str, ...] = (),
    ) -> "TemplatePart":
        return cls(
            is_literal=False,
            is_parameter=True,
            name=name,
            is_optional=is_optional,
            is_catch_all=is_catch_all,
            default_value=default_value,
            constraints=constraints,
        )


@dataclass(frozen=True)
class TemplateSegment:
    parts: tuple[TemplatePart, ...] = ()

    @property
    def is_simple(self) -> bool:
        return len(self.parts) == 1


@dataclass(frozen=True)
class RouteTemplate:
    template_text: str
    segments: tuple[TemplateSegment, ...] = field(default_factory=tuple)

    @property
    def parameters(self) -> tuple[TemplatePart, ...]:
        return tuple(p for s in self.segments for p in s.parts if p.is_parameter)

    def get_parameter(self, name: str) -> Optional[TemplatePart]:
        for p in self.parameters:
            if p.name is not None and p.name.lower() == name.lower():
                return p
        return None


class RouteTemplateParser(Protocol):
    def parse(self, template: str) -> Optional[RouteTemplate]: ...


class TemplateParser:
    """
    Parser for "{name}" style route templates:

      items/{id}                 simple parameter
      items/{id:int:min(1)}      constraints
      items/{page=1}             default value
      items/{slug?}              optional
      files/{*path}              catch-all (final segment only)
      files/{{raw}}              escaped literal braces
    """

    def parse(self, template: str) -> RouteTemplate:
        text = template.strip()
        if text.startswith("~/"):
            text = text[2:]
        elif text.startswith("/"):
            text = text[1:]
        if text.endswith("/"):
            text = text[:-1]

        if not text:
            return RouteTemplate(template_text=template)

        raw_segments = text.split("/")
        segments: list[TemplateSegment] = []
        seen_names: set[str] = set()

        for idx, raw in enumerate(raw_segments):
            if not raw:
                raise RouteTemplateError(template, "empty segment")
            segment = _parse_segment(raw, template)
            is_last = idx == len(raw_segments) - 1
            _validate_segment(segment, template, is_last=is_last)

            for part in segment.parts:
                if not part.is_parameter:
                    continue
                key = (part.name or "").lower()
                if key in seen_names:
                    raise RouteTemplateError(template, f"duplicate parameter {part.name!r}")
                seen_names.add(key)

            segments.append(segment)

        return RouteTemplate(template_text=template, segments=tuple(segments))


def parse_route_template(template: str) -> RouteTemplate:
    return TemplateParser().parse(template)


def _parse_segment(raw: str, template: str) -> TemplateSegment:
    parts: list[TemplatePart] = []
    literal: list[str] = []

    def flush_literal() -> None:
        if literal:
            parts.append(TemplatePart.literal("".join(literal)))
            literal.clear()

    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "{":
            if raw.startswith("{{", i):
                literal.append("{")
                i += 2
                continue
            end = raw.find("}", i + 1)
            if end == -1:
                raise RouteTemplateError(template, "unbalanced '{'")
            inner = raw[i + 1 : end]
            if "{" in inner:
                raise RouteTemplateError(template, "nested '{' in parameter")
            flush_literal()
            if parts and parts[-1].is_parameter:
                raise RouteTemplateError(
                    template, "adjacent parameters must be separated by a literal"
                )
            parts.append(_parse_parameter(inner, template))
            i = end + 1
            continue

        if ch == "}":
            if raw.startswith("}}", i):
                literal.append("}")
                i += 2
                continue
            raise RouteTemplateError(template, "unbalanced '}'")

        if ch == "?":
            raise RouteTemplateError(template, "'?' is only allowed inside a parameter")

        literal.append(ch)
        i += 1

    flush_literal()
    return TemplateSegment(parts=tuple(parts))


def _parse_parameter(inner: str, template: str) -> TemplatePart:
    body = inner.strip()
    is_catch_all = body.startswith("*")
    if is_catch_all:
        body = body.lstrip("*")

    default_value: Optional[str] = None
    body, eq, default_text = body.partition("=")
    if eq:
        default_value = default_text

    is_optional = body.endswith("?")
    if is_optional:
        body = body[:-1]

    name, *constraints = body.split(":")
    if not _PARAM_NAME.match(name):
        raise RouteTemplateError(template, f"invalid parameter name {name!r}")
    if any(not c for c in constraints):
        raise RouteTemplateError(template, f"empty constraint on parameter {name!r}")
    if is_optional and default_value is not None:
        raise RouteTemplateError(
            template, f"optional parameter {name!r} cannot have a default value"
        )
    if is_catch_all and is_optional:
        raise RouteTemplateError(template, f"catch-all parameter {name!r} cannot be optional")

    return TemplatePart.parameter(
        name,
        is_optional=is_optional,
        is_catch_all=is_catch_all,
        default_value=default_value,
        constraints=tuple(constraints),
    )


def _validate_segment(segment: TemplateSegment, template: str, *, is_last: bool) -> None:
    for pos, part in enumerate(segment.parts):
        if not part.is_parameter:
            continue
        if part.is_catch_all and (not is_last or not segment.is_simple):
            raise RouteTemplateError(
                template, f"catch-all parameter {part.name!r} must be alone in the last segment"
            )
        if part.is_optional and pos != len(segment.parts) - 1:
            raise RouteTemplateError(
                template, f"optional parameter {part.name!r} must be last in its segment"
            )
