from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Callable, Iterator, Optional, Union

from contractproxy.contracts.annotations import ContentType, HttpMethod
from contractproxy.metadata.provider import ModelMetadata
from contractproxy.routing.template import RouteTemplate, TemplatePart


def _empty_mapping() -> Mapping[Any, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ProxyMethodDescriptor:
    """Everything the dispatch layer needs to build the request for one operation."""

    method: Callable
    name: str
    declaring_type: type
    http_method: HttpMethod = "GET"
    content_type: Optional[ContentType] = None  # None: transport default
    timeout: Optional[timedelta] = None
    headers: Mapping[str, str] = field(default_factory=_empty_mapping)
    parameters: tuple[ModelMetadata, ...] = ()

    method_marker_template: Optional[str] = None
    route_template: Optional[RouteTemplate] = None
    template_parts: tuple[TemplatePart, ...] = ()
    template_keys: tuple[str, ...] = ()            # literal fragments
    template_parameter_keys: tuple[str, ...] = ()  # {name} placeholders, in order

    @property
    def has_any_template_parameter_key(self) -> bool:
        return len(self.template_parameter_keys) > 0

    @property
    def is_multipart(self) -> bool:
        return self.content_type is ContentType.MULTIPART_FORM_DATA

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "declaring_type": self.declaring_type.__qualname__,
            "http_method": self.http_method,
            "content_type": self.content_type.value if self.content_type else None,
            "timeout": self.timeout.total_seconds() if self.timeout is not None else None,
            "headers": dict(self.headers),
            "template": self.method_marker_template,
            "template_keys": list(self.template_keys),
            "template_parameter_keys": list(self.template_parameter_keys),
            "parameters": [
                {
                    "name": p.property_name,
                    "type": p.type_name,
                    "simple": p.is_simple_type,
                    "form_file": p.is_form_file,
                }
                for p in self.parameters
            ],
        }


@dataclass(frozen=True)
class ProxyDescriptor:
    contract: type
    region_key: str
    route: str
    methods: Mapping[Callable, ProxyMethodDescriptor] = field(default_factory=_empty_mapping)

    def get(self, method: Callable) -> Optional[ProxyMethodDescriptor]:
        return self.methods.get(method)

    def find(self, name: str) -> tuple[ProxyMethodDescriptor, ...]:
        return tuple(m for m in self.methods.values() if m.name == name)

    def __iter__(self) -> Iterator[ProxyMethodDescriptor]:
        return iter(self.methods.values())

    def __len__(self) -> int:
        return len(self.methods)

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract.__qualname__,
            "region_key": self.region_key,
            "route": self.route,
            "methods": [m.to_dict() for m in self.methods.values()],
        }


class DescriptorSet(Mapping[type, ProxyDescriptor]):
    """
    Compiled, read-only descriptors keyed by contract type (input order).

    Never mutated after construction; safe to share between threads.
    """

    __slots__ = ("_descriptors",)

    def __init__(self, descriptors: Mapping[type, ProxyDescriptor]):
        self._descriptors = MappingProxyType(dict(descriptors))

    def __getitem__(self, contract: type) -> ProxyDescriptor:
        return self._descriptors[contract]

    def __iter__(self) -> Iterator[type]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        names = ", ".join(c.__qualname__ for c in self._descriptors)
        return f"DescriptorSet([{names}])"

    @property
    def operation_count(self) -> int:
        return sum(len(d) for d in self._descriptors.values())

    def descriptor_for(self, contract: type) -> ProxyDescriptor:
        try:
            return self._descriptors[contract]
        except KeyError:
            raise LookupError(f"No descriptor compiled for {contract.__qualname__}") from None

    def method(self, contract: type, method: Union[str, Callable]) -> ProxyMethodDescriptor:
        descriptor = self.descriptor_for(contract)
        if not isinstance(method, str):
            found = descriptor.get(getattr(method, "__func__", method))
            if found is None:
                raise LookupError(f"{method!r} is not an operation of {contract.__qualname__}")
            return found

        matches = descriptor.find(method)
        if not matches:
            raise LookupError(f"{contract.__qualname__} has no operation named {method!r}")
        if len(matches) > 1:
            owners = ", ".join(m.declaring_type.__qualname__ for m in matches)
            raise LookupError(
                f"Operation name {method!r} of {contract.__qualname__} is ambiguous "
                f"(declared on {owners}); look it up by function"
            )
        return matches[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "contracts": [d.to_dict() for d in self._descriptors.values()],
            "operation_count": self.operation_count,
        }


# ----------------------------
# Compile-time builders
# ----------------------------

@dataclass
class _MethodDescriptorBuilder:
    method: Callable
    name: str
    declaring_type: type
    http_method: HttpMethod = "GET"
    content_type: Optional[ContentType] = None
    timeout: Optional[timedelta] = None
    headers: dict[str, str] = field(default_factory=dict)
    parameters: list[ModelMetadata] = field(default_factory=list)
    method_marker_template: Optional[str] = None
    route_template: Optional[RouteTemplate] = None
    template_parts: list[TemplatePart] = field(default_factory=list)
    template_keys: list[str] = field(default_factory=list)
    template_parameter_keys: list[str] = field(default_factory=list)

    def freeze(self) -> ProxyMethodDescriptor:
        return ProxyMethodDescriptor(
            method=self.method,
            name=self.name,
            declaring_type=self.declaring_type,
            http_method=self.http_method,
            content_type=self.content_type,
            timeout=self.timeout,
            headers=MappingProxyType(dict(self.headers)),
            parameters=tuple(self.parameters),
            method_marker_template=self.method_marker_template,
            route_template=self.route_template,
            template_parts=tuple(self.template_parts),
            template_keys=tuple(self.template_keys),
            template_parameter_keys=tuple(self.template_parameter_keys),
        )


@dataclass
class _ContractDescriptorBuilder:
    contract: type
    region_key: str
    route: str
    methods: dict[Callable, ProxyMethodDescriptor] = field(default_factory=dict)

    def add(self, descriptor: ProxyMethodDescriptor) -> None:
        self.methods[descriptor.method] = descriptor

    def freeze(self) -> ProxyDescriptor:
        return ProxyDescriptor(
            contract=self.contract,
            region_key=self.region_key,
            route=self.route,
            methods=MappingProxyType(dict(self.methods)),
        )
